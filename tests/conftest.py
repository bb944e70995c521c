"""Shared fixtures for the toiletmap tests."""

import matplotlib
matplotlib.use("Agg")

import pytest

from toiletmap.model.models import PointOfInterest, ToiletType
from toiletmap.visualizer2d.viewport import SlippyMap, Viewport

CENTER = (54.710, 20.510)


@pytest.fixture
def toilets():
    return [
        PointOfInterest(1, 54.710, 20.510, ToiletType.FREE, name="Central market", address="Chernyakhovskogo 1"),
        PointOfInterest(2, 54.712, 20.515, ToiletType.PAID, name="Station", price="30"),
        PointOfInterest(3, 54.705, 20.500, ToiletType.PURCHASE_REQUIRED, name="Cafe"),
    ]


@pytest.fixture
def smap(toilets):
    return SlippyMap(Viewport(*CENTER, zoom=13), toilets)


class FakeResponse:
    def __init__(self, content=b"", status=200, payload=None):
        self.content = content
        self.status_code = status
        self._payload = payload

    def raise_for_status(self):
        import requests
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        return self._payload


@pytest.fixture
def fake_response():
    return FakeResponse
