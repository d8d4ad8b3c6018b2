"""
PII (Personally Identifiable Information) masking for log records.
"""
from typing import Any, Mapping


def mask_email(email: str) -> str:
    """Mask email address."""
    if "@" not in email:
        return email
    local, domain = email.split("@", 1)
    if len(local) <= 2:
        return f"**@{domain}"
    return f"{local[:2]}{'*' * (len(local) - 2)}@{domain}"


def mask_phone(phone: str) -> str:
    """Keep the first and last two characters of a phone number."""
    if len(phone) <= 4:
        return "*" * len(phone)
    return phone[:2] + "*" * (len(phone) - 4) + phone[-2:]


def mask_name(name: str) -> str:
    if len(name) <= 2:
        return "**"
    return name[0] + "*" * (len(name) - 2) + name[-1]


def mask_text(value: str) -> str:
    """Hide free text entirely, keeping only its length."""
    return "*" * min(len(value), 8)


# Fields of a shipping address and how each one is masked; unlisted fields pass through.
ADDRESS_MASKS = {
    "name": mask_name,
    "phone": mask_phone,
    "address": mask_text,
    "email": mask_email,
}


def mask_shipping_address(address: Mapping[str, Any]) -> dict:
    """Return a copy of a shipping address safe to write to logs."""
    masked = {}
    for key, value in address.items():
        masker = ADDRESS_MASKS.get(key)
        if masker is not None and isinstance(value, str):
            masked[key] = masker(value)
        else:
            masked[key] = value
    return masked
