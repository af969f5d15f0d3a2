"""Tests for position reporting-line API endpoints."""

import logging
import uuid
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from src.api.position_hierarchy import get_reassignment_service
from src.config.settings import HierarchySettings
from src.main import create_app
from src.models.position import Position
from src.services.hierarchy_integrity import PositionRecord, build_position_index
from src.services.position_reassignment_service import PositionReassignmentService


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def positions():
    """CEO <- VP <- MGR."""
    ceo = Position(id=uuid.uuid4(), code="CEO", title="Chief Executive", is_active=True)
    vp = Position(
        id=uuid.uuid4(), code="VP", title="Vice President",
        reports_to_position_id=ceo.id, is_active=True,
    )
    manager = Position(
        id=uuid.uuid4(), code="MGR", title="Manager",
        reports_to_position_id=vp.id, is_active=True,
    )
    return {"CEO": ceo, "VP": vp, "MGR": manager}


@pytest.fixture
def mock_session():
    """Create mock database session."""
    return MagicMock()


@pytest.fixture
def service(mock_session, positions):
    """Reassignment service backed by the fixture positions."""
    by_id = {p.id: p for p in positions.values()}

    svc = PositionReassignmentService(mock_session, settings=HierarchySettings())
    svc.repository = MagicMock()
    svc.repository.load_snapshot.side_effect = lambda: build_position_index(
        PositionRecord.from_model(p) for p in by_id.values()
    )

    def update(changes):
        updated = []
        for change in changes:
            position = by_id[change.position_id]
            position.reports_to_position_id = change.new_supervisor_id
            updated.append(position)
        return updated

    svc.repository.update_reporting_lines.side_effect = update
    return svc


@pytest.fixture
def app(service):
    """Create test application with the service injected."""
    app = create_app()
    app.dependency_overrides[get_reassignment_service] = lambda: service
    return app


@pytest.fixture
def client(app):
    """Create test client."""
    return TestClient(app)


@pytest.fixture
def admin_headers():
    """Headers for admin user."""
    return {
        "X-User-ID": str(uuid.uuid4()),
        "X-User-Role": "admin",
    }


def batch(*pairs):
    return {
        "changes": [
            {
                "position_id": str(position.id),
                "new_supervisor_id": str(supervisor.id) if supervisor else None,
                "code": position.code,
            }
            for position, supervisor in pairs
        ],
        "reason": "Reorganization",
    }


# =============================================================================
# Validate Endpoint Tests
# =============================================================================

class TestValidateReportingLines:
    """Tests for POST /api/admin/positions/reporting-lines/validate."""

    def test_valid_batch(self, client, admin_headers, positions):
        """Test a clean batch returns verdicts without writing."""
        response = client.post(
            "/api/admin/positions/reporting-lines/validate",
            json=batch((positions["MGR"], positions["CEO"])),
            headers=admin_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["is_valid"] is True
        assert data["circular_dependency_detected"] is False
        assert data["results"][0]["chain_codes"] == ["CEO"]
        assert data["results"][0]["rendered_chain"] is None

    def test_circular_batch(self, client, admin_headers, positions, mock_session):
        """Test a cycle is reported with its rendered chain."""
        response = client.post(
            "/api/admin/positions/reporting-lines/validate",
            json=batch((positions["CEO"], positions["MGR"])),
            headers=admin_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["is_valid"] is False
        assert data["circular_dependency_detected"] is True
        assert data["errors"][0]["code"] == "CIRCULAR_REPORTING"
        assert data["results"][0]["rendered_chain"] == "MGR → VP → CEO"
        mock_session.commit.assert_not_called()

    def test_duplicate_position_rejected(self, client, admin_headers, positions):
        """Test a position may appear only once per batch."""
        response = client.post(
            "/api/admin/positions/reporting-lines/validate",
            json=batch(
                (positions["MGR"], positions["CEO"]),
                (positions["MGR"], None),
            ),
            headers=admin_headers,
        )

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "validation_error"
        assert error["field_errors"][0]["field"] == "body.changes"
        assert "appears more than once" in error["field_errors"][0]["message"]

    def test_empty_batch_rejected(self, client, admin_headers):
        """Test at least one change is required."""
        response = client.post(
            "/api/admin/positions/reporting-lines/validate",
            json={"changes": []},
            headers=admin_headers,
        )

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "validation_error"
        assert error["field_errors"][0]["field"] == "body.changes"
        assert error["field_errors"][0]["code"] == "too_short"

    def test_malformed_query_rejected(self, client, admin_headers, positions):
        """Test invalid query parameters use the same error envelope."""
        response = client.get(
            f"/api/admin/positions/{positions['MGR'].id}/hierarchy-distance",
            params={"supervisor_id": "not-a-uuid"},
            headers=admin_headers,
        )

        assert response.status_code == 400
        assert response.json()["error"]["field_errors"][0]["field"] == "query.supervisor_id"

    def test_employee_forbidden(self, client, positions):
        """Test non-editors cannot validate reporting lines."""
        response = client.post(
            "/api/admin/positions/reporting-lines/validate",
            json=batch((positions["MGR"], positions["CEO"])),
            headers={"X-User-Role": "employee"},
        )

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "forbidden"

    def test_hr_manager_allowed(self, client, positions):
        """Test HR managers may validate reporting lines."""
        response = client.post(
            "/api/admin/positions/reporting-lines/validate",
            json=batch((positions["MGR"], positions["CEO"])),
            headers={"X-User-Role": "hr_manager"},
        )

        assert response.status_code == 200


# =============================================================================
# Update Endpoint Tests
# =============================================================================

class TestUpdateReportingLines:
    """Tests for PUT /api/admin/positions/reporting-lines."""

    def test_update_success(self, client, admin_headers, positions, mock_session):
        """Test a valid batch is committed and paths are returned."""
        response = client.put(
            "/api/admin/positions/reporting-lines",
            json=batch((positions["MGR"], positions["CEO"])),
            headers=admin_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["updated_count"] == 1
        assert data["positions"][0]["code"] == "MGR"
        assert data["positions"][0]["reports_to_position_id"] == str(positions["CEO"].id)
        assert data["positions"][0]["hierarchy_path"] == ["CEO", "MGR"]
        assert data["positions"][0]["hierarchy_level"] == 2
        mock_session.commit.assert_called_once()

    def test_update_logs_user_and_reason(self, client, admin_headers, positions, caplog):
        """Test the request user and reason reach the commit log."""
        with caplog.at_level(logging.INFO):
            response = client.put(
                "/api/admin/positions/reporting-lines",
                json=batch((positions["MGR"], positions["CEO"])),
                headers=admin_headers,
            )

        assert response.status_code == 200
        assert f"by {admin_headers['X-User-ID']}: Reorganization" in caplog.text

    def test_circular_update_rejected(self, client, admin_headers, positions, mock_session):
        """Test a circular batch returns 400 and writes nothing."""
        response = client.put(
            "/api/admin/positions/reporting-lines",
            json=batch((positions["VP"], positions["MGR"])),
            headers=admin_headers,
        )

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "circular_reporting"
        assert error["message"] == "Circular reporting line: MGR → VP"
        assert error["details"]["chains"] == {str(positions["VP"].id): "MGR → VP"}
        assert positions["VP"].reports_to_position_id == positions["CEO"].id
        mock_session.commit.assert_not_called()

    def test_unknown_supervisor_rejected(self, client, admin_headers, positions):
        """Test references to missing positions return 400."""
        response = client.put(
            "/api/admin/positions/reporting-lines",
            json={
                "changes": [
                    {"position_id": str(positions["MGR"].id), "new_supervisor_id": str(uuid.uuid4())}
                ]
            },
            headers=admin_headers,
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "validation_error"


# =============================================================================
# Distance Endpoint Tests
# =============================================================================

class TestHierarchyDistance:
    """Tests for GET /api/admin/positions/{position_id}/hierarchy-distance."""

    def test_distance(self, client, admin_headers, positions):
        """Test hops between a manager and the CEO."""
        response = client.get(
            f"/api/admin/positions/{positions['MGR'].id}/hierarchy-distance",
            params={"supervisor_id": str(positions["CEO"].id)},
            headers=admin_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["distance"] == 2
        assert data["max_depth"] == 20
        assert data["reached_max_depth"] is False

    def test_distance_capped(self, client, admin_headers, positions):
        """Test the max_depth query parameter caps the walk."""
        response = client.get(
            f"/api/admin/positions/{positions['MGR'].id}/hierarchy-distance",
            params={"supervisor_id": str(positions["CEO"].id), "max_depth": 1},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json()["distance"] == 1
        assert response.json()["reached_max_depth"] is True

    def test_distance_unknown_position(self, client, admin_headers, positions):
        """Test unknown positions return 404."""
        response = client.get(
            f"/api/admin/positions/{uuid.uuid4()}/hierarchy-distance",
            params={"supervisor_id": str(positions["CEO"].id)},
            headers=admin_headers,
        )

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "not_found"
