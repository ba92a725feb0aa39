"""Tests for the hospital and doctor directory."""

from uuid import uuid4

import pytest
from httpx import AsyncClient


@pytest.fixture
def hospital_payload() -> dict:
    return {
        "name": "Lakeside Medical Centre",
        "address": "45 Lake Drive",
        "city": "Kandy",
        "district": "Kandy",
        "contact_number": "+94812223344",
        "email": "contact@lakeside.example.com",
        "facilities": ["Radiology"],
    }


@pytest.fixture
def doctor_payload(hospital: dict) -> dict:
    return {
        "hospital_id": str(hospital["id"]),
        "name": "Dr. Anura Fernando",
        "email": "anura.fernando@example.com",
        "specialization": "Neurology",
        "qualification": "MBBS, FRCP",
        "experience_years": 20,
        "consultation_fee": "3000.00",
        "languages": ["English", "Tamil"],
    }


@pytest.mark.asyncio
async def test_create_hospital(client: AsyncClient, auth_headers: dict, hospital_payload: dict):
    """Test registering a hospital."""
    response = await client.post("/api/v1/hospitals/", json=hospital_payload, headers=auth_headers)

    assert response.status_code == 201
    data = response.json()
    assert data["name"] == hospital_payload["name"]
    assert data["facilities"] == ["Radiology"]
    assert data["is_active"] is True


@pytest.mark.asyncio
async def test_list_hospitals_by_city(
    client: AsyncClient, auth_headers: dict, hospital: dict, hospital_payload: dict
):
    """Test filtering hospitals by city."""
    await client.post("/api/v1/hospitals/", json=hospital_payload, headers=auth_headers)

    response = await client.get("/api/v1/hospitals/", headers=auth_headers)
    assert response.status_code == 200
    assert [h["name"] for h in response.json()] == [
        "Central Hospital",
        "Lakeside Medical Centre",
    ]

    response = await client.get(
        "/api/v1/hospitals/", params={"city": "kandy"}, headers=auth_headers
    )
    assert [h["name"] for h in response.json()] == ["Lakeside Medical Centre"]


@pytest.mark.asyncio
async def test_get_hospital(client: AsyncClient, auth_headers: dict, hospital: dict):
    """Test fetching a hospital by ID."""
    response = await client.get(f"/api/v1/hospitals/{hospital['id']}", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["city"] == "Colombo"

    response = await client.get(f"/api/v1/hospitals/{uuid4()}", headers=auth_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_directory_requires_auth(client: AsyncClient):
    """Test that directory reads need an authenticated agent."""
    response = await client.get("/api/v1/doctors/")
    assert response.status_code in (401, 403)


@pytest.mark.asyncio
async def test_create_doctor(client: AsyncClient, auth_headers: dict, doctor_payload: dict):
    """Test adding a doctor to a hospital."""
    response = await client.post("/api/v1/doctors/", json=doctor_payload, headers=auth_headers)

    assert response.status_code == 201
    data = response.json()
    assert data["name"] == doctor_payload["name"]
    assert data["hospital_id"] == doctor_payload["hospital_id"]
    assert data["consultation_fee"] == 3000.0
    assert data["is_active"] is True


@pytest.mark.asyncio
async def test_create_doctor_unknown_hospital(
    client: AsyncClient, auth_headers: dict, doctor_payload: dict
):
    """Test that a doctor needs an existing hospital."""
    doctor_payload["hospital_id"] = str(uuid4())

    response = await client.post("/api/v1/doctors/", json=doctor_payload, headers=auth_headers)

    assert response.status_code == 404
    assert response.json()["message"] == "Hospital not found"


@pytest.mark.asyncio
async def test_create_doctor_duplicate_email(
    client: AsyncClient, auth_headers: dict, doctor: dict, doctor_payload: dict
):
    """Test that doctor emails are unique."""
    doctor_payload["email"] = doctor["email"]

    response = await client.post("/api/v1/doctors/", json=doctor_payload, headers=auth_headers)

    assert response.status_code == 409


@pytest.mark.asyncio
async def test_list_doctors_filters(
    client: AsyncClient, auth_headers: dict, doctor: dict, doctor_payload: dict
):
    """Test doctor filters and experience ordering."""
    await client.post("/api/v1/doctors/", json=doctor_payload, headers=auth_headers)

    response = await client.get("/api/v1/doctors/", headers=auth_headers)
    assert [d["name"] for d in response.json()] == ["Dr. Anura Fernando", "Dr. Nimal Perera"]

    response = await client.get(
        "/api/v1/doctors/", params={"specialization": "cardio"}, headers=auth_headers
    )
    assert [d["name"] for d in response.json()] == ["Dr. Nimal Perera"]

    response = await client.get(
        "/api/v1/doctors/", params={"min_experience": 15}, headers=auth_headers
    )
    assert [d["name"] for d in response.json()] == ["Dr. Anura Fernando"]

    response = await client.get(
        "/api/v1/doctors/", params={"hospital_id": str(uuid4())}, headers=auth_headers
    )
    assert response.json() == []


@pytest.mark.asyncio
async def test_get_doctor_includes_hospital(
    client: AsyncClient, auth_headers: dict, doctor: dict
):
    """Test the doctor detail view carries the hospital name."""
    response = await client.get(f"/api/v1/doctors/{doctor['id']}", headers=auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["hospital_name"] == "Central Hospital"
    assert data["hospital_city"] == "Colombo"

    response = await client.get(f"/api/v1/doctors/{uuid4()}", headers=auth_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_update_doctor(client: AsyncClient, auth_headers: dict, doctor: dict):
    """Test updating a doctor and deactivating them."""
    response = await client.put(
        f"/api/v1/doctors/{doctor['id']}",
        json={"consultation_fee": "2750.00", "is_active": False},
        headers=auth_headers,
    )

    assert response.status_code == 200
    data = response.json()
    assert data["consultation_fee"] == 2750.0
    assert data["is_active"] is False

    response = await client.get("/api/v1/doctors/", headers=auth_headers)
    assert response.json() == []

    response = await client.put(
        f"/api/v1/doctors/{uuid4()}", json={"name": "Nobody"}, headers=auth_headers
    )
    assert response.status_code == 404
