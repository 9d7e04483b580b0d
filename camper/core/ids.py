import re
import uuid

_ID_RE = re.compile(r"^[a-z]{3}_[0-9a-f]{32}$")


def gen_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex}"


def looks_like_id(value: str, prefix: str) -> bool:
    return bool(_ID_RE.match(value)) and value.startswith(f"{prefix}_")
