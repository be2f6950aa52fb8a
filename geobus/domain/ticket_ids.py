import secrets
import time

TICKET_PREFIX = "TICKET"


def generate_ticket_id() -> str:
    """
    Opaque external reference: millisecond timestamp plus a random
    discriminator. Uniqueness is finally enforced by the bookings table.
    """
    millis = time.time_ns() // 1_000_000
    return f"{TICKET_PREFIX}{millis}{secrets.token_hex(4).upper()}"
