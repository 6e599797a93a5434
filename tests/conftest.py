"""Shared test fixtures."""

from typing import Any, Dict, List
from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

from edu_cti_dashboard.api.main import create_app
from edu_cti_dashboard.api.views import DashboardViews
from edu_cti_dashboard.core.generations import RequestGenerations
from edu_cti_dashboard.core.http import CTIApiClient


def make_record(incident_id: str, **fields: Any) -> Dict[str, Any]:
    """Incident record as the API returns it, with every optional field null."""
    record = {
        "incident_id": incident_id,
        "university_name": "Unknown",
        "victim_raw_name": None,
        "institution_type": None,
        "country": None,
        "country_code": None,
        "incident_date": None,
        "title": None,
        "attack_type_hint": None,
        "attack_category": None,
        "ransomware_family": None,
        "threat_actor_name": None,
        "status": "suspected",
        "llm_enriched": False,
    }
    record.update(fields)
    return record


@pytest.fixture
def incident_records() -> List[Dict[str, Any]]:
    """Five incidents covering enriched, unenriched and partially known records."""
    return [
        make_record(
            "inc-001",
            university_name="State University",
            victim_raw_name="State Univ.",
            institution_type="University",
            country="US",
            country_code="US",
            incident_date="2024-01-15",
            title="Ransomware attack disrupts State University",
            attack_category="ransomware",
            ransomware_family="LockBit",
            threat_actor_name="LockBit",
            status="confirmed",
            llm_enriched=True,
            data_breached=True,
        ),
        make_record(
            "inc-002",
            university_name="Oxford College",
            institution_type="College",
            country="United Kingdom",
            incident_date="2024-03-02",
            title="Phishing campaign targets staff",
            attack_category="phishing",
        ),
        make_record(
            "inc-003",
            university_name="Toronto Institute of Technology",
            institution_type="University",
            country="Canada",
            incident_date="2024-03-20",
            attack_category="ransomware",
            threat_actor_name="Akira",
            llm_enriched=True,
        ),
        make_record(
            "inc-004",
            university_name="Springfield School District",
            institution_type="K-12",
            country="United States",
            incident_date="2023-11-05",
            attack_category="data_breach",
            threat_actor_name="LockBit",
            llm_enriched=True,
            data_impact={"data_breached": True},
        ),
        make_record(
            "inc-005",
            university_name="Atlantis Academy",
            country="Atlantis",
            attack_type_hint="ddos",
        ),
    ]


@pytest.fixture
def api_client() -> Mock:
    """Mock EduThreat-CTI API client."""
    client = Mock(spec=CTIApiClient)
    client.base_url = "http://api.test"
    return client


@pytest.fixture
def views(api_client) -> DashboardViews:
    return DashboardViews(api_client, RequestGenerations())


@pytest.fixture
def client(views) -> TestClient:
    """FastAPI test client wired to the mock API client."""
    return TestClient(create_app(views=views))
