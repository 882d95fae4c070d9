"""Dependency injection for FastAPI endpoints"""

from datetime import datetime
from fastapi import Request
from term_savings.domain.catalog import PlanCatalog, default_catalog
from term_savings.infrastructure.clients.settlement import SettlementClient
from term_savings.utils.date_utils import utcnow


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_clock() -> datetime:
    """Wall-clock instant for the request; overridden in tests to pin time"""
    return utcnow()


def get_catalog() -> PlanCatalog:
    """Provide the configured plan catalog"""
    return default_catalog


def get_settlement_client() -> SettlementClient:
    """Provide settlement webhook client instance"""
    return SettlementClient()
