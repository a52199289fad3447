"""
Unit tests for snapshot providers and the catalog API connector.
"""

import logging
from unittest.mock import MagicMock

import pytest
import requests

from src.catalog_connectors import (
    CatalogAPIConnector,
    InMemorySnapshotProvider,
    JsonSnapshotProvider,
)
from src.risk_scoring.exceptions import DataSourceError, UnknownEntityError
from tests.conftest import make_multiplier


class TestInMemorySnapshotProvider:

    def test_unknown_entities_raise(self, example_provider):
        with pytest.raises(UnknownEntityError):
            example_provider.get_location_risk_profile("atlantis")
        with pytest.raises(UnknownEntityError):
            example_provider.get_business_vulnerability("blacksmith")

    def test_unknown_entity_is_data_source_error(self, example_provider):
        with pytest.raises(DataSourceError):
            example_provider.get_location_risk_profile("atlantis")

    def test_profiles_are_read_only(self, example_provider):
        profile = example_provider.get_location_risk_profile("portland")
        with pytest.raises(TypeError):
            profile["hurricane"] = 10

    def test_multipliers_filtered_by_characteristic(self):
        provider = InMemorySnapshotProvider(
            location_profiles={},
            vulnerability_profiles={},
            multipliers=[
                make_multiplier(),
                make_multiplier(id="m_power", characteristic_type="power_dependency"),
                {"id": "m_raw", "characteristicType": "tourism_share"},
            ],
        )

        assert len(provider.get_multipliers("tourism_share")) == 2
        assert provider.get_multipliers("unheard_of") == []
        assert provider.list_characteristic_types() == ["power_dependency", "tourism_share"]


class TestJsonSnapshotProvider:

    def test_loads_sample_snapshot(self, sample_snapshot_path):
        provider = JsonSnapshotProvider(sample_snapshot_path)

        assert provider.get_location_risk_profile("portland")["landslide"] == 7
        assert len(provider.get_multipliers("tourism_share")) == 2
        assert provider.list_admin_units()["portland"] == "Portland"
        assert "restaurant" in provider.list_business_types()
        assert provider.get_strategy_catalog()

    def test_missing_file(self, tmp_path):
        with pytest.raises(DataSourceError):
            JsonSnapshotProvider(tmp_path / "nowhere.json")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(DataSourceError):
            JsonSnapshotProvider(path)

    def test_document_must_be_object(self, tmp_path):
        path = tmp_path / "list.json"
        path.write_text("[]", encoding="utf-8")

        with pytest.raises(DataSourceError):
            JsonSnapshotProvider(path)


def mock_response(status_code=200, payload=None):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.exceptions.HTTPError(f"{status_code} error")
    return response


class TestCatalogAPIConnector:

    @pytest.fixture
    def session(self):
        return MagicMock()

    @pytest.fixture
    def connector(self, session):
        return CatalogAPIConnector(base_url="https://catalog.example/api/v1/", timeout=5, session=session)

    def test_fetch_location_profile(self, connector, session):
        session.get.return_value = mock_response(payload={"riskProfile": {"hurricane": 8}})

        assert connector.get_location_risk_profile("kingston") == {"hurricane": 8}
        session.get.assert_called_once_with(
            "https://catalog.example/api/v1/admin-units/kingston/risks", params=None, timeout=5.0
        )

    def test_fetch_multipliers_passes_characteristic(self, connector, session):
        session.get.return_value = mock_response(payload={"multipliers": [{"id": "m1"}]})

        assert connector.get_multipliers("tourism_share") == [{"id": "m1"}]
        _, kwargs = session.get.call_args
        assert kwargs["params"] == {"characteristicType": "tourism_share"}

    def test_bare_list_payload_accepted(self, connector, session):
        session.get.return_value = mock_response(payload=[{"strategyId": "s1"}])
        assert connector.get_strategy_catalog() == [{"strategyId": "s1"}]

    def test_not_found_entity(self, connector, session):
        session.get.return_value = mock_response(status_code=404)

        with pytest.raises(UnknownEntityError):
            connector.get_business_vulnerability("blacksmith")

    def test_connection_error(self, connector, session):
        session.get.side_effect = requests.exceptions.ConnectionError("refused")

        with pytest.raises(DataSourceError):
            connector.get_strategy_catalog()

    def test_http_error(self, connector, session):
        session.get.return_value = mock_response(status_code=500)

        with pytest.raises(DataSourceError):
            connector.get_strategy_catalog()

    def test_unexpected_payload_shape(self, connector, session, caplog):
        session.get.return_value = mock_response(payload={"riskProfile": [8, 3]})

        with caplog.at_level(logging.ERROR):
            with pytest.raises(DataSourceError):
                connector.get_location_risk_profile("kingston")

        assert any(
            r.levelno == logging.ERROR and "riskProfile" in r.getMessage() for r in caplog.records
        )

    def test_invalid_json_body(self, connector, session):
        response = mock_response()
        response.json.side_effect = ValueError("no JSON")
        session.get.return_value = response

        with pytest.raises(DataSourceError):
            connector.get_strategy_catalog()

    def test_base_url_from_environment(self, monkeypatch):
        monkeypatch.setenv("RISK_CATALOG_API_URL", "https://env.example/api/")
        monkeypatch.setenv("RISK_CATALOG_API_TIMEOUT", "12")

        connector = CatalogAPIConnector(session=MagicMock())

        assert connector.base_url == "https://env.example/api"
        assert connector.timeout == 12.0
