from __future__ import annotations


class BackendError(RuntimeError):
    """A backend call failed at the transport level or returned a non-2xx status."""
