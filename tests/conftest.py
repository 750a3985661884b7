import threading
import time

import pytest

from config import APIConfig, AppConfig
from fetchers import LocationRecord
from session import SessionStore

BASE_URL = "http://api.test"


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=None):
        self.status_code = status_code
        self._payload = payload
        self.text = text if text is not None else ""

    @property
    def ok(self):
        return self.status_code < 400

    @property
    def is_redirect(self):
        return self.status_code in (301, 302, 303, 307, 308)

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON object could be decoded")
        return self._payload


class FakeSession:
    """
    Stands in for requests.Session. Routes map (METHOD, path) to a
    FakeResponse, an exception instance, or a callable(call) returning one.
    """

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.headers = {}
        self.calls = []
        self.closed = False
        self._lock = threading.Lock()

    def request(self, method, url, headers=None, timeout=None, **kwargs):
        path = url[len(BASE_URL):] if url.startswith(BASE_URL) else url
        call = {"method": method, "path": path, "headers": headers or {}, "kwargs": kwargs}
        with self._lock:
            self.calls.append(call)
        route = self.routes[(method, path)]
        if callable(route) and not isinstance(route, FakeResponse):
            route = route(call)
        if isinstance(route, Exception):
            raise route
        return route

    def get(self, url, timeout=None, **kwargs):
        return self.request("GET", url, timeout=timeout, **kwargs)

    def close(self):
        self.closed = True


def delayed(seconds, response):
    def handler(call):
        time.sleep(seconds)
        return response
    return handler


def api_doc(_id, lat=0.0, lon=0.0, likes=0, dislikes=0, typeicon="", types=None, title=None):
    return {
        "_id": _id,
        "src": f"https://img.test/{_id}.jpg",
        "title": title or f"Location {_id}",
        "description": f"About {_id}",
        "typeicon": typeicon,
        "types": types or [],
        "latitude": lat,
        "longitude": lon,
        "likes": likes,
        "dislikes": dislikes,
    }


def make_record(_id, lat=0.0, lon=0.0, likes=0, dislikes=0, categories=(), amenities=(), title=None):
    return LocationRecord(
        id=str(_id),
        latitude=lat,
        longitude=lon,
        title=title or f"Location {_id}",
        description=f"About {_id}",
        image_ref=f"https://img.test/{_id}.jpg",
        category_tags=tuple(categories),
        amenity_tags=tuple(amenities),
        likes=likes,
        dislikes=dislikes,
    )


@pytest.fixture
def api():
    return APIConfig(base_url=BASE_URL, timeout_seconds=5)


@pytest.fixture
def credentials(tmp_path):
    return SessionStore(str(tmp_path / "session.json"))


@pytest.fixture
def logged_in(credentials):
    credentials.save("secret-token")
    return credentials


@pytest.fixture
def app_config(tmp_path):
    return AppConfig(
        api=APIConfig(base_url=BASE_URL),
        session_file=str(tmp_path / "session.json"),
        output_dir=str(tmp_path / "output"),
    )
