from __future__ import annotations

import base64
import binascii


def decode_base64(value: str) -> bytes:
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValueError("cells must be valid base64") from exc


def encode_base64(value: bytes) -> str:
    return base64.b64encode(value).decode("ascii")
