"""Tests for Redis caching of directory reads."""

import json
from unittest.mock import MagicMock
from uuid import uuid4

import pytest
import redis
from httpx import AsyncClient

from echannel.config import settings
from echannel.core.redis_client import CacheManager
from echannel.schemas.doctors import DoctorUpdate
from echannel.services.doctor_service import DoctorService


def test_cache_manager_get_json():
    """Test CacheManager get_json method."""
    mock_redis = MagicMock()
    cache_manager = CacheManager(redis_client=mock_redis)

    # Test cache miss
    mock_redis.get.return_value = None
    result = cache_manager.get_json("test_key")
    assert result is None
    mock_redis.get.assert_called_once_with("test_key")

    # Test cache hit
    mock_redis.reset_mock()
    mock_redis.get.return_value = '{"name": "Test", "value": 123}'
    result = cache_manager.get_json("test_key")
    assert result == {"name": "Test", "value": 123}
    mock_redis.get.assert_called_once_with("test_key")


def test_cache_manager_set_json():
    """Test CacheManager set_json method."""
    mock_redis = MagicMock()
    cache_manager = CacheManager(redis_client=mock_redis)

    test_data = {"id": uuid4(), "value": 123}

    # Test without TTL
    result = cache_manager.set_json("test_key", test_data)
    assert result is True
    mock_redis.set.assert_called_once()

    # Test with TTL
    mock_redis.reset_mock()
    result = cache_manager.set_json("test_key", test_data, ttl=300)
    assert result is True
    key, ttl, payload = mock_redis.setex.call_args.args
    assert (key, ttl) == ("test_key", 300)
    assert json.loads(payload)["id"] == str(test_data["id"])


def test_cache_manager_delete_pattern():
    """Test CacheManager delete_pattern method."""
    mock_redis = MagicMock()
    cache_manager = CacheManager(redis_client=mock_redis)

    mock_redis.keys.return_value = ["doctor:list:a", "doctor:list:b"]
    mock_redis.delete.return_value = 2

    result = cache_manager.delete_pattern("doctor:list:*")

    mock_redis.keys.assert_called_once_with("doctor:list:*")
    mock_redis.delete.assert_called_once_with("doctor:list:a", "doctor:list:b")
    assert result == 2


def test_cache_manager_fails_open():
    """Test that a Redis outage reads as a miss and writes as a no-op."""
    mock_redis = MagicMock()
    mock_redis.get.side_effect = redis.ConnectionError("down")
    mock_redis.setex.side_effect = redis.ConnectionError("down")
    mock_redis.delete.side_effect = redis.ConnectionError("down")
    mock_redis.keys.side_effect = redis.ConnectionError("down")
    cache_manager = CacheManager(redis_client=mock_redis)

    assert cache_manager.get_json("doctor:1") is None
    assert cache_manager.set_json("doctor:1", {"a": 1}, ttl=60) is False
    assert cache_manager.delete("doctor:1") is False
    assert cache_manager.delete_pattern("doctor:list:*") == 0


@pytest.mark.asyncio
async def test_doctor_read_is_cached(db_session, doctor: dict):
    """Test a cache miss loads from the database and stores the doctor."""
    mock_redis = MagicMock()
    mock_redis.get.return_value = None
    service = DoctorService(CacheManager(mock_redis))

    result = await service.get_doctor_by_id(db_session, doctor["id"])

    assert result["name"] == doctor["name"]
    assert result["hospital_name"] == "Central Hospital"
    key, ttl, _ = mock_redis.setex.call_args.args
    assert key == f"doctor:{doctor['id']}"
    assert ttl == settings.doctor_cache_ttl


@pytest.mark.asyncio
async def test_doctor_cache_hit_skips_database(db_session):
    """Test a cached doctor is served without a query."""
    doctor_id = uuid4()
    mock_redis = MagicMock()
    mock_redis.get.return_value = json.dumps({"id": str(doctor_id), "name": "Dr. Cached"})
    service = DoctorService(CacheManager(mock_redis))

    result = await service.get_doctor_by_id(db_session, doctor_id)

    assert result == {"id": str(doctor_id), "name": "Dr. Cached"}
    mock_redis.setex.assert_not_called()


@pytest.mark.asyncio
async def test_doctor_update_invalidates_cache(db_session, doctor: dict):
    """Test updating a doctor drops its entry and every cached listing."""
    mock_redis = MagicMock()
    mock_redis.get.return_value = None
    mock_redis.keys.return_value = ["doctor:list:abc"]
    service = DoctorService(CacheManager(mock_redis))

    updated = await service.update_doctor(
        db_session, doctor["id"], DoctorUpdate(specialization="Neurology")
    )

    assert updated["specialization"] == "Neurology"
    mock_redis.delete.assert_any_call(f"doctor:{doctor['id']}")
    mock_redis.keys.assert_called_with("doctor:list:*")
    mock_redis.delete.assert_any_call("doctor:list:abc")


@pytest.mark.asyncio
async def test_doctor_list_served_from_cache(
    client: AsyncClient, auth_headers: dict, mock_redis: MagicMock, doctor: dict
):
    """Test the second identical listing comes from Redis."""
    response1 = await client.get("/api/v1/doctors/", headers=auth_headers)
    assert response1.status_code == 200
    assert len(response1.json()) == 1

    # Serve whatever the first request stored
    key, _, payload = mock_redis.setex.call_args.args
    assert key.startswith("doctor:list:")
    mock_redis.get.side_effect = lambda k: payload if k == key else None

    response2 = await client.get("/api/v1/doctors/", headers=auth_headers)
    assert response2.status_code == 200
    assert response2.json() == response1.json()
