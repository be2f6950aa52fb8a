import re

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
TLD_PATTERN = re.compile(r"^[a-zA-Z]{2,}$")
UPI_PATTERN = re.compile(r"^[a-zA-Z0-9.\-_]{2,256}@[a-zA-Z]{2,64}$")


def is_valid_email(email: str | None) -> bool:
    if not email or not isinstance(email, str):
        return False
    if not EMAIL_PATTERN.fullmatch(email):
        return False

    parts = email.split("@")
    if len(parts) != 2:
        return False
    domain_parts = parts[1].split(".")
    if len(domain_parts) < 2:
        return False
    return bool(TLD_PATTERN.fullmatch(domain_parts[-1]))


def is_valid_upi(upi_id: str | None) -> bool:
    """`local-part@provider`, e.g. alice@upi or bob.smith@paytm."""
    if not upi_id or not isinstance(upi_id, str):
        return False
    return bool(UPI_PATTERN.fullmatch(upi_id.strip()))
