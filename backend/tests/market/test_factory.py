"""Tests for price source factory."""

from goldfolio.config import DEFAULT_PRICE_URL, Settings
from goldfolio.market.factory import create_price_source
from goldfolio.market.http_source import GoldApiPriceSource
from goldfolio.market.simulator import GBMPriceSource


class TestFactory:
    """Tests for create_price_source factory."""

    def test_creates_http_source_by_default(self):
        """Test that the live feed is the default source."""
        source = create_price_source(Settings())
        try:
            assert isinstance(source, GoldApiPriceSource)
            assert source.url == DEFAULT_PRICE_URL
        finally:
            source.close()

    def test_http_source_receives_url(self):
        """Test that the configured URL is passed through."""
        source = create_price_source(Settings(price_url="https://feed.test/xau"))
        try:
            assert source.url == "https://feed.test/xau"
        finally:
            source.close()

    def test_creates_simulator(self):
        """Test that the simulator is created when requested."""
        source = create_price_source(Settings(price_source="simulator"))
        assert isinstance(source, GBMPriceSource)

    def test_simulator_steps_with_poll_interval(self):
        """Test that the simulator advances one poll interval per fetch."""
        source = create_price_source(Settings(price_source="simulator", poll_interval=5.0))
        assert source.dt == 5.0 / GBMPriceSource.SECONDS_PER_YEAR
