"""Módulo API para cdp-http."""

from __future__ import annotations

from .server import CDPHttpAPI
from .models import FetchRequest, FetchResponse, ErrorResponse, SessionStatus

__all__ = ["CDPHttpAPI", "FetchRequest", "FetchResponse", "ErrorResponse", "SessionStatus"]
