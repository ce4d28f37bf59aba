"""Tests for Redis caching implementation."""

from unittest.mock import MagicMock

import redis
from httpx import AsyncClient

from app.config import settings
from app.core.redis_client import CacheManager
from app.dependencies import get_cache_manager
from app.main import app


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
    mock_redis.get.return_value = '{"doctor_name": "Dr. Rao", "capacity": 10}'
    result = cache_manager.get_json("test_key")
    assert result == {"doctor_name": "Dr. Rao", "capacity": 10}
    mock_redis.get.assert_called_once_with("test_key")


def test_cache_manager_set_json():
    """Test CacheManager set_json method."""
    mock_redis = MagicMock()
    cache_manager = CacheManager(redis_client=mock_redis)

    test_data = {"doctor_name": "Dr. Rao", "capacity": 10}

    # Test without TTL
    result = cache_manager.set_json("test_key", test_data)
    assert result is True
    mock_redis.set.assert_called_once()

    # Test with TTL
    mock_redis.reset_mock()
    result = cache_manager.set_json("test_key", test_data, ttl=300)
    assert result is True
    mock_redis.setex.assert_called_once_with(
        "test_key", 300, '{"doctor_name": "Dr. Rao", "capacity": 10}'
    )


def test_cache_manager_delete():
    """Test CacheManager delete method."""
    mock_redis = MagicMock()
    cache_manager = CacheManager(redis_client=mock_redis)

    result = cache_manager.delete("test_key")
    assert result is True
    mock_redis.delete.assert_called_once_with("test_key")


def test_cache_manager_fails_soft():
    """Redis outages turn into cache misses."""
    mock_redis = MagicMock()
    mock_redis.get.side_effect = redis.ConnectionError("down")
    mock_redis.setex.side_effect = redis.ConnectionError("down")
    mock_redis.delete.side_effect = redis.ConnectionError("down")
    cache_manager = CacheManager(redis_client=mock_redis)

    assert cache_manager.get_json("test_key") is None
    assert cache_manager.set_json("test_key", {"a": 1}, ttl=60) is False
    assert cache_manager.delete("test_key") is False


async def test_availability_uses_schedule_cache(
    client: AsyncClient,
    doctor: dict,
    location: dict,
    booking_date,
) -> None:
    """Availability requests read the doctor's schedule through the cache."""
    mock_redis = MagicMock()
    mock_redis.get.return_value = None
    app.dependency_overrides[get_cache_manager] = lambda: CacheManager(mock_redis)

    url = f"/api/v1/appointments/doctors/{doctor['id']}/availability"
    response = await client.get(url, params={"date": booking_date.isoformat()})
    assert response.status_code == 200

    mock_redis.get.assert_called_once_with(f"schedule:{doctor['id']}")
    mock_redis.setex.assert_called_once()
    key, ttl, _ = mock_redis.setex.call_args.args
    assert key == f"schedule:{doctor['id']}"
    assert ttl == settings.schedule_cache_ttl_seconds
