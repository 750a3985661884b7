import json
import os

import pytest

import main
from config import GeoConfig
from fetchers import LocationStore
from votes import VoteClient

from conftest import FakeResponse, FakeSession, api_doc


@pytest.fixture
def demo_config(app_config, monkeypatch):
    app_config.geo = GeoConfig(origin_lat=None, origin_lon=None, geoip_url="")
    monkeypatch.setattr(main, "AppConfig", lambda: app_config)
    return app_config


def load_view(config):
    with open(os.path.join(config.output_dir, config.data_filename), encoding="utf-8") as f:
        return json.load(f)


def test_demo_browse_by_category(demo_config):
    code = main.main(["--demo", "browse", "--lat", "32.65", "--lon", "-16.91",
                      "--category", "Praia", "--distance", "10"])

    assert code == 0
    view = load_view(demo_config)
    assert view["title"] == "Praia"
    assert [c["title"] for c in view["cards"]] == ["Praia Formosa"]
    assert view["position"] is not None


def test_bare_invocation_browses(demo_config, capsys):
    assert main.main(["--demo"]) == 0

    view = load_view(demo_config)
    assert view["awaiting_location"] is True
    assert len(view["cards"]) == len(main.generate_demo_data())
    assert "not supported" in capsys.readouterr().out


def test_demo_records_cover_every_category(demo_config):
    categories = {c for r in main.generate_demo_data() for c in r.category_tags}
    assert categories == set(demo_config.filters.categories)


def test_favorites_requires_login(demo_config, capsys):
    assert main.main(["favorites"]) == 1
    assert "login" in capsys.readouterr().out


def test_demo_rejects_other_commands(demo_config):
    with pytest.raises(SystemExit) as exc:
        main.main(["--demo", "like", "1"])
    assert exc.value.code == 2


@pytest.fixture
def backend(app_config, monkeypatch):
    http = FakeSession({
        ("GET", "/locations"): FakeResponse(200, [api_doc("1", likes=3, dislikes=1)]),
        ("POST", "/locations/1/like"): FakeResponse(200, api_doc("1", likes=4, dislikes=1)),
    })
    monkeypatch.setattr(main, "AppConfig", lambda: app_config)
    monkeypatch.setattr(main, "LocationStore", lambda api: LocationStore(api, http))
    monkeypatch.setattr(main, "VoteClient", lambda api, credentials: VoteClient(api, credentials, http))
    return http


def posts(http):
    return [c["path"] for c in http.calls if c["method"] == "POST"]


def test_like_updates_rendered_card(backend, logged_in, app_config, capsys):
    assert main.main(["like", "1"]) == 0

    assert posts(backend) == ["/locations/1/like"]
    assert "👍 4" in capsys.readouterr().out
    assert load_view(app_config)["cards"][0]["likes"] == 4


def test_like_for_unknown_location_is_not_sent(backend, logged_in, capsys):
    assert main.main(["like", "9"]) == 1

    assert posts(backend) == []
    assert "not in the current view" in capsys.readouterr().out
