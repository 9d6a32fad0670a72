# apps/mobile/api_client.py
import logging

import httpx

from .exceptions import ApiError
from .geofence import GeoFence

logger = logging.getLogger(__name__)


class ApiClient:
    """Thin async client for the SecureNest REST API."""

    def __init__(self, base_url, timeout=10.0, transport=None):
        self.base_url = base_url.rstrip('/')
        self._client = httpx.AsyncClient(base_url=self.base_url, timeout=timeout, transport=transport)

    async def aclose(self):
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()

    async def _request(self, method, path, **kwargs):
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"{method} {path} failed: {e}")
            raise ApiError(f"Request failed: {e}") from e

        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        if response.is_error or body.get('success') is False:
            message = body.get('message') or f"HTTP {response.status_code}"
            logger.info(f"{method} {path} returned {response.status_code}: {message}")
            raise ApiError(message, status_code=response.status_code)
        return body

    # Geofencing
    async def get_geofences(self, parent_id):
        body = await self._request('GET', f'/geofencing/parent/{parent_id}/')
        return [GeoFence.from_api(item) for item in body.get('geoFences', [])]

    async def create_geofence(self, parent_id, name, latitude, longitude, radius):
        body = await self._request('POST', '/geofencing/', json={
            'parentId': parent_id,
            'name': name,
            'latitude': latitude,
            'longitude': longitude,
            'radius': radius,
        })
        return GeoFence.from_api(body['geoFence'])

    async def delete_geofence(self, geofence_id):
        await self._request('DELETE', f'/geofencing/{geofence_id}/')

    # Parents and children
    async def get_parent_by_clerk_id(self, clerk_id):
        body = await self._request('GET', f'/parents/clerk/{clerk_id}/')
        return body['parent']

    async def get_children_by_parent(self, parent_id):
        body = await self._request('GET', f'/children/by-parent/{parent_id}/')
        return body.get('children', [])

    async def authenticate_child(self, family_code):
        body = await self._request('POST', '/children/authenticate/', json={'familyCode': family_code})
        return body['child']
