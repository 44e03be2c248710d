"""HTTP API."""

from genealogy_records.web.app import create_app

__all__ = ["create_app"]
