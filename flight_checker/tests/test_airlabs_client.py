from unittest.mock import patch, Mock

import pytest
import requests

from flight_checker.airlabs_client import AirLabsClient, OfferEnricher
from flight_checker.errors import RequestError, ResponseError


AIRLINES = {"SU": "Aeroflot", "DP": "Pobeda"}
AIRPORTS = {"SVO": "Sheremetyevo", "LED": "Pulkovo"}


def airlabs_get(url, params=None, timeout=None):
    """Fake ``requests.get`` answering like AirLabs v9."""
    code = params.get("iata_code")
    if url.endswith("/airlines"):
        rows = [{"iata_code": code, "name": AIRLINES[code]}] if code in AIRLINES else []
    elif url.endswith("/airports"):
        rows = [{"iata_code": code, "name": AIRPORTS[code]}] if code in AIRPORTS else []
    elif url.endswith("/flight"):
        rows = {"flight_iata": params["flight_iata"], "aircraft_icao": "A320", "status": "scheduled"}
    else:
        raise AssertionError(url)
    resp = Mock(status_code=200)
    resp.json.return_value = {"request": {}, "response": rows}
    return resp


@patch("requests.get", side_effect=airlabs_get)
def test_lookups(mock_get):
    client = AirLabsClient("key")
    assert client.airline_name("SU") == "Aeroflot"
    assert client.airport_name("LED") == "Pulkovo"
    assert client.airline_name("ZZ") is None
    assert client.flight_info("SU", "30")["aircraft_icao"] == "A320"
    assert mock_get.call_args_list[0].kwargs["params"]["api_key"] == "key"


@patch("requests.get")
def test_api_error_body(mock_get):
    resp = Mock(status_code=200)
    resp.json.return_value = {"error": {"message": "Unknown api_key", "code": "unknown_api_key"}}
    mock_get.return_value = resp
    with pytest.raises(ResponseError, match="Unknown api_key"):
        AirLabsClient("bad").airline_name("SU")


@patch("requests.get")
def test_http_error(mock_get):
    mock_get.return_value = Mock(status_code=503, text="unavailable")
    with pytest.raises(ResponseError):
        AirLabsClient("key").airport_name("LED")


@patch("requests.get", side_effect=requests.ConnectionError("unreachable"))
def test_transport_error(mock_get):
    with pytest.raises(RequestError):
        AirLabsClient("key").airport_name("LED")


@patch("requests.get", side_effect=airlabs_get)
def test_enrich_fills_names(mock_get, make_offer):
    offer = make_offer()
    assert OfferEnricher(AirLabsClient("key")).enrich(offer)
    assert offer.airline_name == "Aeroflot"
    assert offer.origin_airport_name == "Sheremetyevo"
    assert offer.destination_airport_name == "Pulkovo"
    assert offer.aircraft == "A320"
    assert offer.flight_status == "scheduled"


@patch("requests.get", side_effect=requests.ConnectionError("unreachable"))
def test_enrich_unreachable_falls_back_to_codes(mock_get, caplog, make_offer):
    offer = make_offer()
    assert not OfferEnricher(AirLabsClient("key")).enrich(offer)
    assert offer.airline_name == "SU"
    assert offer.origin_airport_name == "SVO"
    assert offer.destination_airport_name == "LED"
    assert offer.aircraft is None
    assert any("lookup" in r.getMessage() for r in caplog.records)


@patch("requests.get", side_effect=airlabs_get)
def test_enrich_unknown_code_uses_raw_code(mock_get, make_offer):
    offer = make_offer(airline="ZZ", flight_number="")
    assert not OfferEnricher(AirLabsClient("key")).enrich(offer)
    assert offer.airline_name == "ZZ"
    assert offer.origin_airport_name == "Sheremetyevo"


@patch("requests.get", side_effect=airlabs_get)
def test_names_are_memoised(mock_get, make_offer):
    enricher = OfferEnricher(AirLabsClient("key"))
    enricher.enrich(make_offer(flight_number=""))
    first = mock_get.call_count
    enricher.enrich(make_offer(flight_number=""))
    assert first == 3
    assert mock_get.call_count == 3


def test_failed_lookup_is_retried_next_time(make_offer):
    enricher = OfferEnricher(AirLabsClient("key"))
    with patch("requests.get", side_effect=requests.Timeout("slow")):
        enricher.enrich(make_offer(flight_number=""))
    with patch("requests.get", side_effect=airlabs_get):
        offer = make_offer(flight_number="")
        assert enricher.enrich(offer)
    assert offer.airline_name == "Aeroflot"


@patch("requests.get")
def test_enrich_fills_seat_counts(mock_get, make_offer):
    def answer(url, params=None, timeout=None):
        if url.endswith("/flight"):
            rows = {"aircraft_icao": "A321", "seats_economy": 14, "seats_business": "2", "seats_first": "n/a"}
        else:
            rows = []
        resp = Mock(status_code=200)
        resp.json.return_value = {"response": rows}
        return resp

    mock_get.side_effect = answer
    offer = make_offer()
    OfferEnricher(AirLabsClient("key")).enrich(offer)
    assert offer.seats_economy == 14
    assert offer.seats_business == 2
    assert offer.seats_first is None
    assert offer.has_seat_info
