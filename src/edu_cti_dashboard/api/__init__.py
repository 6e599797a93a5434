"""
EduThreat-CTI Dashboard API

FastAPI app serving assembled dashboard page views built from the
EduThreat-CTI REST API.
"""

from .main import app, create_app

__all__ = ["app", "create_app"]
