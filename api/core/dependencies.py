"""
FastAPI dependencies for shared infrastructure.
"""

from __future__ import annotations

from fastapi import Request

from .db import Database


def get_database(request: Request) -> Database:
    return request.app.state.db
