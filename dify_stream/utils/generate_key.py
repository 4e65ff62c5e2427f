import secrets
import string
import time

_BASE36 = string.digits + string.ascii_lowercase

def generate_user_id(length: int = 9) -> str:
    # Same shape the web client stores per browser session: user_<ms>_<base36>
    suffix = "".join(secrets.choice(_BASE36) for _ in range(length))
    return f"user_{int(time.time() * 1000)}_{suffix}"

def generate_request_id() -> str:
    return secrets.token_hex(8)
