"""
Unit tests for facility management endpoints.
"""
import pytest


def get_auth_header(token: str) -> dict:
    """Helper function to create authorization header."""
    return {"Authorization": f"Bearer {token}"}


NEW_FACILITY = {
    "name": "Robotics Lab",
    "location": "Engineering Building, Room 104",
    "capacity": 16,
    "description": "Soldering stations and 3D printers",
    "facility_type": "lab",
    "amenities": "3D printer, oscilloscopes",
    "requires_approval": True,
}


class TestFacilityCreation:
    """Tests for facility creation endpoint."""

    def test_admin_creates_facility(self, client, admin_token):
        """Test an admin can create a facility."""
        response = client.post(
            "/facilities/", headers=get_auth_header(admin_token), json=NEW_FACILITY
        )
        assert response.status_code == 201
        data = response.json()
        assert data["name"] == "Robotics Lab"
        assert data["facility_type"] == "lab"
        assert data["requires_approval"] is True
        assert data["is_active"] is True

    def test_student_cannot_create_facility(self, client, student_token):
        response = client.post(
            "/facilities/", headers=get_auth_header(student_token), json=NEW_FACILITY
        )
        assert response.status_code == 403

    def test_duplicate_name(self, client, admin_token, sample_facility):
        payload = dict(NEW_FACILITY, name=sample_facility.name)
        response = client.post("/facilities/", headers=get_auth_header(admin_token), json=payload)
        assert response.status_code == 400
        assert "already exists" in response.json()["detail"]

    @pytest.mark.parametrize("capacity", [0, -5])
    def test_capacity_must_be_positive(self, client, admin_token, capacity):
        payload = dict(NEW_FACILITY, capacity=capacity)
        response = client.post("/facilities/", headers=get_auth_header(admin_token), json=payload)
        assert response.status_code == 422


class TestFacilityListing:
    """Tests for browsing facilities."""

    def test_lists_only_active_sorted_by_name(self, client, sample_facilities):
        response = client.get("/facilities/")
        assert response.status_code == 200
        names = [f["name"] for f in response.json()]
        assert names == ["Chemistry Lab", "Indoor Gym", "Study Room 3"]

    def test_filter_by_type(self, client, sample_facilities):
        response = client.get("/facilities/", params={"facility_type": "gym"})
        assert [f["name"] for f in response.json()] == ["Indoor Gym"]

    def test_search_matches_description_and_location(self, client, sample_facilities):
        response = client.get("/facilities/", params={"search": "fume"})
        assert [f["name"] for f in response.json()] == ["Chemistry Lab"]

        response = client.get("/facilities/", params={"search": "library"})
        assert [f["name"] for f in response.json()] == ["Study Room 3"]

    def test_capacity_bounds(self, client, sample_facilities):
        response = client.get("/facilities/", params={"min_capacity": 10, "max_capacity": 60})
        assert [f["name"] for f in response.json()] == ["Chemistry Lab", "Indoor Gym"]

    def test_get_single_facility(self, client, sample_facility):
        response = client.get(f"/api/v1/facilities/{sample_facility.id}")
        assert response.status_code == 200
        assert response.json()["capacity"] == 10

    def test_get_inactive_facility(self, client, sample_facilities):
        response = client.get(f"/facilities/{sample_facilities[-1].id}")
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"


class TestFacilityUpdate:
    """Tests for facility updates and deactivation."""

    def test_admin_updates_capacity(self, client, admin_token, sample_facility):
        response = client.patch(
            f"/facilities/{sample_facility.id}",
            headers=get_auth_header(admin_token),
            json={"capacity": 12, "requires_approval": True},
        )
        assert response.status_code == 200
        assert response.json()["capacity"] == 12
        assert response.json()["requires_approval"] is True

    def test_null_leaves_required_fields_unchanged(self, client, admin_token, sample_facility):
        """Test explicit nulls only clear the optional columns."""
        response = client.patch(
            f"/facilities/{sample_facility.id}",
            headers=get_auth_header(admin_token),
            json={
                "capacity": None,
                "name": None,
                "requires_approval": None,
                "is_active": None,
                "description": None,
            },
        )
        assert response.status_code == 200
        data = response.json()
        assert data["capacity"] == 10
        assert data["name"] == "Seminar Room A"
        assert data["requires_approval"] is False
        assert data["is_active"] is True
        assert data["description"] is None

    def test_update_missing_facility(self, client, admin_token):
        response = client.patch(
            "/facilities/99999", headers=get_auth_header(admin_token), json={"capacity": 5}
        )
        assert response.status_code == 404

    def test_faculty_cannot_update(self, client, faculty_token, sample_facility):
        response = client.patch(
            f"/facilities/{sample_facility.id}",
            headers=get_auth_header(faculty_token),
            json={"capacity": 100},
        )
        assert response.status_code == 403

    def test_deactivate(self, client, admin_token, sample_facility):
        response = client.delete(
            f"/facilities/{sample_facility.id}", headers=get_auth_header(admin_token)
        )
        assert response.status_code == 200
        assert response.json() == {"detail": "Facility deactivated"}

        assert client.get(f"/facilities/{sample_facility.id}").status_code == 404
        assert client.get("/facilities/").json() == []
