"""HTTP API for CalcDispatch."""

from calcdispatch.api.app import create_app

__all__ = ["create_app"]
