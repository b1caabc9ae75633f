from __future__ import annotations


class ContractViolation(RuntimeError):
    """An upstream collaborator broke its contract; the process cannot continue safely."""


class TextureUnavailable(Exception):
    """No texture could be fetched for a submap this time around."""


class TextureDecodeError(ValueError):
    """Stored texture bytes or their manifest cannot be turned into cells."""
