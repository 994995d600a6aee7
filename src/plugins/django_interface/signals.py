import phonenumbers
from django.conf import settings
from django.db.models.signals import pre_save
from django.dispatch import receiver
from phonenumbers import NumberParseException

from .models import Client


def normalize_phone(raw: str | None, default_region: str = "DZ") -> str | None:
    """Telefone em E.164 (com '+'), ou None quando vazio."""
    if not raw or not raw.strip():
        return None
    try:
        num = phonenumbers.parse(raw, default_region)
    except NumberParseException as exc:
        raise ValueError(f"Telefone inválido: {raw!r}") from exc
    if not phonenumbers.is_possible_number(num):
        raise ValueError(f"Telefone inválido: {raw!r}")
    return phonenumbers.format_number(num, phonenumbers.PhoneNumberFormat.E164)


@receiver(pre_save, sender=Client)
def normalize_client_before_save(sender, instance: Client, **kwargs):
    instance.name = " ".join((instance.name or "").split())
    instance.phone = normalize_phone(instance.phone, settings.PHONE_DEFAULT_REGION)
