"""Unit tests for the composebuilder.runtime module."""

from __future__ import annotations

import typing as typ
from http import HTTPStatus

import falcon.asgi
import falcon.testing
import pytest

from composebuilder.catalog.validation import CatalogValidationError
from composebuilder.runtime import RuntimeSettings, create_app

if typ.TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture
def data_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the runtime at a temporary data directory."""
    path = tmp_path / "data"
    monkeypatch.setenv("COMPOSEBUILDER_DATA_DIR", str(path))
    return path


@pytest.fixture
def registry_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Configure a registry without sweeping on start-up."""
    monkeypatch.setenv("COMPOSEBUILDER_REGISTRY_HOST", "registry.test")
    monkeypatch.setenv("COMPOSEBUILDER_REGISTRY_USERNAME", "ci")
    monkeypatch.setenv("COMPOSEBUILDER_REGISTRY_PASSWORD", "secret")
    monkeypatch.setenv("COMPOSEBUILDER_VERSION_SYNC_ON_START", "false")


class TestCreateApp:
    """Tests for the create_app factory function."""

    def test_create_app_returns_falcon_app(self, data_dir: Path) -> None:
        """create_app returns a Falcon ASGI App instance."""
        assert isinstance(create_app(), falcon.asgi.App)

    def test_data_dir_is_created(self, data_dir: Path) -> None:
        """The data directory exists once the app is built."""
        create_app()
        assert data_dir.is_dir()

    def test_health_and_ready(self, data_dir: Path) -> None:
        """A writable data directory serves liveness and readiness."""
        client = falcon.testing.TestClient(create_app())

        assert client.simulate_get("/health").json == {"status": "ok"}
        ready = client.simulate_get("/ready")
        assert ready.status_code == HTTPStatus.OK
        assert ready.json == {"status": "ready"}

    def test_unwritable_data_dir_is_not_ready(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """The process still starts, but readiness reports the failure."""
        blocker = tmp_path / "blocker"
        blocker.write_text("", encoding="utf-8")
        monkeypatch.setenv("COMPOSEBUILDER_DATA_DIR", str(blocker))

        client = falcon.testing.TestClient(create_app())

        assert client.simulate_get("/health").status_code == HTTPStatus.OK
        ready = client.simulate_get("/ready")
        assert ready.status_code == HTTPStatus.SERVICE_UNAVAILABLE
        assert ready.json["data_dir_writable"] is False

    def test_disabled_without_registry(self, data_dir: Path) -> None:
        """Without registry variables refreshes answer with a null result."""
        client = falcon.testing.TestClient(create_app())

        assert client.simulate_get("/templates/versions/status").json == {
            "enabled": False
        }
        refresh = client.simulate_post("/templates/versions/refresh")
        assert refresh.status_code == HTTPStatus.OK
        assert refresh.json == {"enabled": False, "updated": False, "result": None}
        assert not (data_dir / "catalog.json").exists()

    @pytest.mark.usefixtures("registry_env")
    def test_enabled_with_registry(self, data_dir: Path) -> None:
        """Registry variables switch synchronisation on."""
        client = falcon.testing.TestClient(create_app())

        result = client.simulate_get("/templates/versions/status")

        assert result.json == {"enabled": True}

    def test_invalid_seed_fails_start_up(
        self, data_dir: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """A broken seed catalog is reported before serving traffic."""
        seed = tmp_path / "seed.yaml"
        seed.write_text("- id: Not A Slug\n  name: Bad\n", encoding="utf-8")
        monkeypatch.setenv("COMPOSEBUILDER_CATALOG_SEED", str(seed))

        with pytest.raises(CatalogValidationError):
            create_app()


class TestRuntimeSettings:
    """Tests for ``RuntimeSettings.from_env``."""

    def test_defaults(self) -> None:
        """An empty environment yields the container defaults."""
        settings = RuntimeSettings.from_env()

        assert (settings.host, settings.port) == ("0.0.0.0", 8080)  # noqa: S104
        assert settings.log_level == "INFO"
        assert str(settings.data_dir) == "data"
        assert settings.seed_path is None

    def test_reads_environment(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Every process setting can be overridden."""
        monkeypatch.setenv("COMPOSEBUILDER_HOST", "127.0.0.1")
        monkeypatch.setenv("COMPOSEBUILDER_PORT", " 9000 ")
        monkeypatch.setenv("COMPOSEBUILDER_LOG_LEVEL", "debug")
        monkeypatch.setenv("COMPOSEBUILDER_DATA_DIR", str(tmp_path))
        monkeypatch.setenv("COMPOSEBUILDER_CATALOG_SEED", str(tmp_path / "s.yaml"))

        settings = RuntimeSettings.from_env()

        assert (settings.host, settings.port) == ("127.0.0.1", 9000)
        assert settings.log_level == "debug"
        assert settings.data_dir == tmp_path
        assert settings.seed_path == tmp_path / "s.yaml"

    @pytest.mark.parametrize("raw", ["http", "0", "65536", "-1"])
    def test_invalid_port_exits(
        self, raw: str, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Invalid ports abort start-up with exit status 1."""
        monkeypatch.setenv("COMPOSEBUILDER_PORT", raw)

        with pytest.raises(SystemExit) as excinfo:
            RuntimeSettings.from_env()
        assert excinfo.value.code == 1
