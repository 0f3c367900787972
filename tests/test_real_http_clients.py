"""The HTTP clients against respx-mocked endpoints; nothing here touches the network."""

import base64
import json

import httpx
import pytest
import respx

from jetset.integrations.clients.real_http.amadeus import AmadeusFlightClient
from jetset.integrations.clients.real_http.arcpay import ArcPayClient, clean_base_url
from jetset.integrations.clients.real_http.hosted_auth import HostedAuthClient
from jetset.integrations.clients.real_http.resend_email import ResendEmailClient
from jetset.integrations.contracts.interfaces import CheckoutSessionRequest, EmailMessage, FlightSearchParams
from jetset.integrations.policy.response_wrappers import IntegrationError

GATEWAY = "https://gw.example/api/rest/version/100"
FLIGHTS = "https://flights.example"
AUTH = "https://auth.example"


# ---------------------------------------------------------------------------
# Payment gateway
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "url, expected",
    [
        ("https://api.arcpay.travel/api/rest/version/77/merchant/TEST1/", "https://api.arcpay.travel/api/rest/version/100"),
        (GATEWAY, GATEWAY),
        ("", "https://api.arcpay.travel/api/rest/version/100"),
    ],
)
def test_clean_base_url(url, expected):
    assert clean_base_url(url) == expected


@pytest.mark.asyncio
@respx.mock
async def test_checkout_session_request_shape():
    route = respx.post(f"{GATEWAY}/merchant/TEST1/session").mock(
        return_value=httpx.Response(201, json={"session": {"id": "SESSION0001"}, "successIndicator": "abc123"})
    )
    client = ArcPayClient("TEST1", "secret", base_url=GATEWAY)

    session = await client.create_checkout_session(
        CheckoutSessionRequest(
            order_id="ORD-1",
            amount=1250,
            currency="USD",
            description="London Getaway",
            return_url="https://api.jetset.test/api/payments?action=payment-callback",
            cancel_url="https://app.jetset.test/payment/cancelled",
            customer_email="ada@example.com",
            customer_first_name="Ada",
            customer_phone="+1 (555) 123-4567",
            billing_address={"street": "1 Main St", "city": "Austin", "state": "TX", "postalCode": "73301", "country": "US"},
        )
    )

    assert session.session_id == "SESSION0001"
    assert session.success_indicator == "abc123"
    assert session.checkout_url == "https://api.arcpay.travel/checkout/pay/SESSION0001"

    request = route.calls.last.request
    assert request.headers["authorization"] == "Basic " + base64.b64encode(b"merchant.TEST1:secret").decode()
    body = json.loads(request.content)
    assert body["apiOperation"] == "INITIATE_CHECKOUT"
    assert body["order"]["amount"] == "1250.00"
    assert body["customer"] == {"email": "ada@example.com", "firstName": "Ada", "mobilePhone": "15551234567"}
    assert body["billing"]["address"]["postcodeZip"] == "73301"


@pytest.mark.asyncio
@respx.mock
async def test_gateway_error_carries_explanation():
    respx.put(f"{GATEWAY}/merchant/TEST1/order/ORD-1/transaction/refund-1").mock(
        return_value=httpx.Response(400, json={"result": "ERROR", "error": {"cause": "INVALID_REQUEST", "explanation": "Invalid amount"}})
    )
    client = ArcPayClient("TEST1", "secret", base_url=GATEWAY)

    with pytest.raises(IntegrationError) as exc:
        await client.refund("ORD-1", "refund-1", 10, "USD")
    assert str(exc.value) == "Invalid amount"
    assert exc.value.status_code == 400
    assert exc.value.payload["error"]["cause"] == "INVALID_REQUEST"


@pytest.mark.asyncio
@respx.mock
async def test_gateway_unreachable():
    respx.get(f"{GATEWAY}/merchant/TEST1/order/ORD-1").mock(side_effect=httpx.ConnectError("refused"))
    with pytest.raises(IntegrationError, match="Payment gateway unreachable"):
        await ArcPayClient("TEST1", "secret", base_url=GATEWAY).retrieve_order("ORD-1")


@pytest.mark.asyncio
@respx.mock
async def test_unconfigured_gateway_refuses_authenticated_calls(monkeypatch):
    monkeypatch.delenv("ARC_PAY_MERCHANT_ID", raising=False)
    monkeypatch.delenv("ARC_PAY_API_PASSWORD", raising=False)
    info = respx.get(f"{GATEWAY}/information").mock(return_value=httpx.Response(200, json={"status": "OPERATING"}))
    client = ArcPayClient(base_url=GATEWAY)

    with pytest.raises(IntegrationError, match="not configured"):
        await client.retrieve_order("ORD-1")
    assert await client.gateway_information() == {"status": "OPERATING"}
    assert "authorization" not in info.calls.last.request.headers


@pytest.mark.asyncio
@respx.mock
async def test_void_targets_transaction():
    route = respx.put(f"{GATEWAY}/merchant/TEST1/order/ORD-1/transaction/void-1").mock(
        return_value=httpx.Response(200, json={"result": "SUCCESS"})
    )
    await ArcPayClient("TEST1", "secret", base_url=GATEWAY).void("ORD-1", "void-1", "txn-9")

    assert json.loads(route.calls.last.request.content) == {"apiOperation": "VOID", "transaction": {"targetTransactionId": "txn-9"}}


# ---------------------------------------------------------------------------
# Flight data
# ---------------------------------------------------------------------------


@pytest.fixture
def flights_api():
    with respx.mock(base_url=FLIGHTS, assert_all_called=False) as router:
        router.post("/v1/security/oauth2/token", name="token").mock(
            side_effect=[
                httpx.Response(200, json={"access_token": "tok-1", "expires_in": 1799}),
                httpx.Response(200, json={"access_token": "tok-2", "expires_in": 1799}),
            ]
        )
        router.get("/v2/shopping/flight-offers", name="offers").mock(
            return_value=httpx.Response(200, json={"data": [{"id": "1"}], "meta": {"count": 1}})
        )
        router.get("/v1/reference-data/locations", name="locations").mock(
            return_value=httpx.Response(
                200,
                json={"data": [{"iataCode": "LHR", "subType": "AIRPORT", "name": "HEATHROW", "address": {"cityName": "LONDON", "countryName": "UNITED KINGDOM", "countryCode": "GB"}}]},
            )
        )
        router.get(path__startswith="/v1/booking/flight-orders/", name="order").mock(
            return_value=httpx.Response(401, json={"errors": [{"title": "Invalid access token"}]})
        )
        yield router


@pytest.mark.asyncio
async def test_flight_client_reuses_token_and_drops_empty_params(flights_api):
    client = AmadeusFlightClient("key", "secret", base_url=FLIGHTS)

    result = await client.search_flights(FlightSearchParams(origin="JFK", destination="LHR", departure_date="2099-06-01"))
    locations = await client.search_locations("lon")

    assert flights_api["token"].call_count == 1
    assert result == {"data": [{"id": "1"}], "dictionaries": {}, "meta": {"count": 1}}
    search = flights_api["offers"].calls.last.request
    assert search.headers["authorization"] == "Bearer tok-1"
    assert "returnDate" not in search.url.params
    assert "nonStop" not in search.url.params
    assert search.url.params["adults"] == "1"
    assert locations[0]["displayName"] == "HEATHROW, UNITED KINGDOM"


@pytest.mark.asyncio
async def test_flight_client_clears_token_on_401(flights_api):
    client = AmadeusFlightClient("key", "secret", base_url=FLIGHTS)

    with pytest.raises(IntegrationError, match="Invalid access token"):
        await client.get_flight_order("ORDER/1")
    await client.search_locations("lon")

    assert flights_api["token"].call_count == 2
    assert flights_api["locations"].calls.last.request.headers["authorization"] == "Bearer tok-2"


@pytest.mark.asyncio
async def test_flight_client_needs_credentials(monkeypatch):
    monkeypatch.delenv("AMADEUS_API_KEY", raising=False)
    monkeypatch.delenv("AMADEUS_API_SECRET", raising=False)
    with pytest.raises(IntegrationError, match="Missing flight data API credentials"):
        await AmadeusFlightClient().get_access_token()


# ---------------------------------------------------------------------------
# Hosted auth
# ---------------------------------------------------------------------------

USER = {"id": "u-1", "email": "ada@example.com", "user_metadata": {"firstName": "Ada"}, "app_metadata": {"role": "staff"}}


@pytest.mark.asyncio
@respx.mock
async def test_auth_sign_in_maps_session():
    route = respx.post(f"{AUTH}/auth/v1/token", params={"grant_type": "password"}).mock(
        return_value=httpx.Response(200, json={"access_token": "at", "refresh_token": "rt", "expires_at": 4102444800, "user": USER})
    )
    client = HostedAuthClient(f"{AUTH}/", "anon")

    session = await client.sign_in_with_password("ada@example.com", "secret123")

    assert session.access_token == "at"
    assert session.user.first_name == "Ada"
    assert session.user.role == "staff"
    assert route.calls.last.request.headers["apikey"] == "anon"


@pytest.mark.asyncio
@respx.mock
async def test_auth_sign_up_pending_confirmation():
    respx.post(f"{AUTH}/auth/v1/signup").mock(return_value=httpx.Response(200, json=USER))

    session = await HostedAuthClient(AUTH, "anon").sign_up("ada@example.com", "secret123")
    assert session.access_token == ""
    assert session.user.id == "u-1"


@pytest.mark.asyncio
@respx.mock
async def test_auth_get_user_treats_401_as_signed_out():
    respx.get(f"{AUTH}/auth/v1/user").mock(return_value=httpx.Response(401, json={"msg": "invalid JWT"}))
    assert await HostedAuthClient(AUTH, "anon").get_user("expired") is None


@pytest.mark.asyncio
@respx.mock
async def test_auth_errors_surface_message():
    respx.post(f"{AUTH}/auth/v1/token").mock(return_value=httpx.Response(400, json={"error_description": "Invalid login credentials"}))
    with pytest.raises(IntegrationError, match="Invalid login credentials") as exc:
        await HostedAuthClient(AUTH, "anon").sign_in_with_password("ada@example.com", "nope")
    assert exc.value.status_code == 400


def test_oauth_url():
    client = HostedAuthClient(AUTH, "anon")
    assert client.oauth_url("google", "https://app.jetset.test/cb") == (
        "https://auth.example/auth/v1/authorize?provider=google&redirect_to=https%3A%2F%2Fapp.jetset.test%2Fcb"
    )


# ---------------------------------------------------------------------------
# Email
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@respx.mock
async def test_resend_payload():
    route = respx.post("https://api.resend.com/emails").mock(return_value=httpx.Response(200, json={"id": "email-1"}))
    client = ResendEmailClient("re_key", "JetSetters <hello@jetset.test>")

    result = await client.send(EmailMessage(to=["ada@example.com"], subject="Hi", html="<p>Hi</p>", text="Hi", reply_to="desk@jetset.test"))

    assert result == {"id": "email-1"}
    request = route.calls.last.request
    assert request.headers["authorization"] == "Bearer re_key"
    assert json.loads(request.content) == {
        "from": "JetSetters <hello@jetset.test>",
        "to": ["ada@example.com"],
        "subject": "Hi",
        "html": "<p>Hi</p>",
        "text": "Hi",
        "reply_to": "desk@jetset.test",
    }


@pytest.mark.asyncio
@respx.mock
async def test_resend_rejection_and_missing_key(monkeypatch):
    respx.post("https://api.resend.com/emails").mock(return_value=httpx.Response(422, json={"message": "Invalid `to` field"}))
    with pytest.raises(IntegrationError, match="Invalid `to` field"):
        await ResendEmailClient("re_key").send(EmailMessage(to=["x"], subject="s", html="h"))

    monkeypatch.delenv("RESEND_API_KEY", raising=False)
    with pytest.raises(IntegrationError, match="RESEND_API_KEY"):
        await ResendEmailClient().send(EmailMessage(to=["ada@example.com"], subject="s", html="h"))
