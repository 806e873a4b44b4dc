import asyncio

import pytest
from pytest_httpserver import HTTPServer

from lnurlbot.utils.exchange_rates import DollarRate, fetch_msat_per_dollar


@pytest.fixture
def dollar_rate(httpserver: HTTPServer) -> DollarRate:
    return DollarRate(url=httpserver.url_for("/ticker"), path="$.last", max_age=60)


@pytest.mark.anyio
async def test_fetch_msat_per_dollar(httpserver: HTTPServer):
    httpserver.expect_request("/ticker").respond_with_json({"last": "50,000.00"})
    rate = await fetch_msat_per_dollar(httpserver.url_for("/ticker"), "$.last")
    assert rate == pytest.approx(2_000_000)


@pytest.mark.anyio
async def test_fetch_missing_price(httpserver: HTTPServer):
    httpserver.expect_request("/ticker").respond_with_json({"bid": "50000.00"})
    with pytest.raises(ValueError, match="No price found"):
        await fetch_msat_per_dollar(httpserver.url_for("/ticker"), "$.last")


class TestDollarRate:
    @pytest.mark.anyio
    async def test_dollar_price(self, httpserver: HTTPServer, dollar_rate):
        httpserver.expect_request("/ticker").respond_with_json({"last": "50000.00"})
        assert await dollar_rate.get_dollar_price(2_000_000) == "1.00 USD"
        assert await dollar_rate.get_dollar_price(21_000) == "0.01 USD"

    @pytest.mark.anyio
    async def test_fresh_rate_is_not_refetched(
        self, httpserver: HTTPServer, dollar_rate
    ):
        httpserver.expect_request("/ticker").respond_with_json({"last": "50000.00"})
        await asyncio.gather(*[dollar_rate.get_rate() for _ in range(5)])
        await dollar_rate.get_rate()
        assert len(httpserver.log) == 1

    @pytest.mark.anyio
    async def test_stale_rate_on_failure(self, httpserver: HTTPServer, dollar_rate):
        httpserver.expect_request("/ticker").respond_with_json({"last": "50000.00"})
        assert await dollar_rate.get_rate() == pytest.approx(2_000_000)

        httpserver.clear()
        httpserver.expect_request("/ticker").respond_with_data("down", status=503)
        dollar_rate.last_update = 0

        assert await dollar_rate.get_rate() == pytest.approx(2_000_000)

    @pytest.mark.anyio
    async def test_no_rate_at_all(self, httpserver: HTTPServer, dollar_rate):
        httpserver.expect_request("/ticker").respond_with_data("down", status=503)
        with pytest.raises(ValueError, match="Could not fetch the dollar rate"):
            await dollar_rate.get_rate()
        assert await dollar_rate.get_dollar_price(1000) == "~ USD"
