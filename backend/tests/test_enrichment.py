"""
LinkMe Backend - Request Enrichment Unit Tests
================================================

What we test:
    ✅ Client IP priority: X-Forwarded-For, X-Real-IP, socket peer
    ✅ Private / loopback / reserved addresses are never geolocated
    ✅ User-agent parsing, including empty and unparseable input
    ✅ GeoLocator behavior with a mocked geoip2 reader and without one
"""

from unittest.mock import patch

import geoip2.errors
import pytest
from starlette.requests import Request

from linkme.services.enrichment import (
    ClientInfo,
    GeoInfo,
    GeoLocator,
    build_viewer_context,
    get_client_ip,
    is_private_address,
    parse_user_agent,
)


CHROME_WINDOWS_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
IPHONE_UA = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1"
)


def make_request(headers=None, client=("203.0.113.9", 50000)) -> Request:
    raw_headers = [
        (name.lower().encode("latin-1"), value.encode("latin-1"))
        for name, value in (headers or {}).items()
    ]
    scope = {
        "type": "http",
        "method": "POST",
        "path": "/api/analytics/track-view/jane",
        "headers": raw_headers,
        "client": client,
        "query_string": b"",
    }
    return Request(scope)


class TestClientIp:

    def test_forwarded_for_first_entry_wins(self):
        request = make_request({
            "X-Forwarded-For": "198.51.100.7, 10.0.0.1",
            "X-Real-IP": "198.51.100.99",
        })
        assert get_client_ip(request) == "198.51.100.7"

    def test_real_ip_used_without_forwarded_for(self):
        request = make_request({"X-Real-IP": "198.51.100.99"})
        assert get_client_ip(request) == "198.51.100.99"

    def test_falls_back_to_socket_peer(self):
        assert get_client_ip(make_request()) == "203.0.113.9"

    def test_none_when_nothing_available(self):
        assert get_client_ip(make_request(client=None)) is None

    def test_blank_forwarded_for_is_skipped(self):
        request = make_request({"X-Forwarded-For": " , ", "X-Real-IP": "198.51.100.5"})
        assert get_client_ip(request) == "198.51.100.5"

    def test_garbage_forwarded_for_is_skipped(self):
        request = make_request({"X-Forwarded-For": "a" * 60})
        assert get_client_ip(request) == "203.0.113.9"

    def test_garbage_headers_fall_through_to_real_ip(self):
        request = make_request({
            "X-Forwarded-For": "<script>, 198.51.100.7",
            "X-Real-IP": "198.51.100.5",
        })
        assert get_client_ip(request) == "198.51.100.5"

    def test_ipv6_is_normalized(self):
        request = make_request({"X-Forwarded-For": "2001:DB8:0:0::1"})
        assert get_client_ip(request) == "2001:db8::1"

    def test_non_ip_peer_is_none(self):
        assert get_client_ip(make_request(client=("testclient", 50000))) is None


class TestPrivateAddresses:

    @pytest.mark.parametrize("ip", [
        "127.0.0.1",
        "::1",
        "192.168.1.20",
        "10.4.5.6",
        "172.16.0.1",
        "172.31.255.255",
        "172.64.0.1",
        "169.254.1.1",
        "0.0.0.0",
        "::ffff:10.0.0.1",
    ])
    def test_internal_addresses(self, ip):
        assert is_private_address(ip) is True

    @pytest.mark.parametrize("ip", ["8.8.8.8", "2001:4860:4860::8888", "81.2.69.142"])
    def test_public_addresses(self, ip):
        assert is_private_address(ip) is False

    @pytest.mark.parametrize("ip", [None, "", "not-an-ip", "999.1.1.1"])
    def test_missing_or_invalid_counts_as_private(self, ip):
        assert is_private_address(ip) is True


class TestUserAgentParsing:

    def test_desktop_chrome(self):
        info = parse_user_agent(CHROME_WINDOWS_UA)
        assert info.device == "Desktop"
        assert info.browser.startswith("Chrome")

    def test_iphone_safari(self):
        info = parse_user_agent(IPHONE_UA)
        assert info.device == "iPhone"
        assert "Safari" in info.browser

    @pytest.mark.parametrize("ua", [None, "", "   "])
    def test_empty_user_agent_is_unknown(self, ua):
        assert parse_user_agent(ua) == ClientInfo(device="Unknown", browser="Unknown")

    def test_parser_exception_degrades_to_unknown(self):
        with patch("linkme.services.enrichment.parse_ua", side_effect=RuntimeError("boom")):
            info = parse_user_agent(CHROME_WINDOWS_UA)
        assert info == ClientInfo()


class TestGeoLocator:

    def test_public_ip_resolves(self, geo_locator, geo_reader):
        assert geo_locator.lookup("81.2.69.142") == GeoInfo(country="DE", city="Berlin")
        geo_reader.city.assert_called_once_with("81.2.69.142")

    @pytest.mark.parametrize("ip", ["127.0.0.1", "::1", "192.168.0.8", "10.1.1.1", "172.20.3.4"])
    def test_private_ip_is_not_looked_up(self, geo_locator, geo_reader, ip):
        assert geo_locator.lookup(ip) == GeoInfo(country=None, city=None)
        geo_reader.city.assert_not_called()

    def test_address_not_in_database(self, geo_locator, geo_reader):
        geo_reader.city.side_effect = geoip2.errors.AddressNotFoundError("not found")
        assert geo_locator.lookup("8.8.8.8") == GeoInfo()

    def test_reader_failure_is_swallowed(self, geo_locator, geo_reader):
        geo_reader.city.side_effect = OSError("corrupt database")
        assert geo_locator.lookup("8.8.8.8") == GeoInfo()

    def test_missing_city_name_is_none(self, geo_locator, geo_reader):
        geo_reader.city.return_value.city.name = None
        assert geo_locator.lookup("8.8.8.8") == GeoInfo(country="DE", city=None)

    def test_open_missing_database_is_disabled(self, tmp_path):
        locator = GeoLocator.open(str(tmp_path / "missing.mmdb"))
        assert locator.enabled is False
        assert locator.lookup("8.8.8.8") == GeoInfo()

    def test_open_unreadable_database_is_disabled(self, tmp_path):
        broken = tmp_path / "broken.mmdb"
        broken.write_bytes(b"not a maxmind database")
        locator = GeoLocator.open(str(broken))
        assert locator.enabled is False

    def test_close_releases_reader(self, geo_locator, geo_reader):
        geo_locator.close()
        geo_reader.close.assert_called_once()
        assert geo_locator.enabled is False


class TestBuildViewerContext:

    def test_collects_all_fields(self, geo_locator):
        request = make_request({
            "X-Forwarded-For": "81.2.69.142",
            "User-Agent": CHROME_WINDOWS_UA,
            "Referer": "https://news.example.com/post",
        })
        context = build_viewer_context(request, geo_locator)

        assert context.ip == "81.2.69.142"
        assert context.user_agent == CHROME_WINDOWS_UA
        assert context.referrer == "https://news.example.com/post"
        assert context.device == "Desktop"
        assert context.country == "DE"
        assert context.city == "Berlin"

    def test_loopback_request_has_no_geography(self, geo_locator):
        request = make_request(client=("127.0.0.1", 1234))
        context = build_viewer_context(request, geo_locator)

        assert context.ip == "127.0.0.1"
        assert (context.country, context.city) == (None, None)
        assert (context.device, context.browser) == ("Unknown", "Unknown")
        assert context.referrer is None

    def test_disabled_locator(self):
        request = make_request({"X-Forwarded-For": "8.8.8.8"})
        context = build_viewer_context(request, GeoLocator(None))
        assert context.country is None

    def test_garbage_forwarded_for_never_reaches_context(self, geo_locator):
        request = make_request({"X-Forwarded-For": "x" * 200})
        context = build_viewer_context(request, geo_locator)
        assert context.ip == "203.0.113.9"
