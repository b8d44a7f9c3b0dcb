"""
Shared pytest fixtures for the email relay test suite.

Supabase and Resend are replaced by httpx.MockTransport fakes that record
every request, so tests can assert exactly which outbound calls happened.
"""
import json
from urllib.parse import parse_qs

import httpx
import pytest
from fastapi.testclient import TestClient

from email_relay.config import Settings
from email_relay.main import create_app

SUPABASE_URL = "https://proj.supabase.co"
GOOD_TOKEN = "good-token"
CALLER_ID = "6f1c2d3e-0000-4000-8000-000000000001"
CALLER_EMAIL = "owner@acme-studio.com"


# ── Fake Supabase (auth + PostgREST) ──────────────────────────────────────────

class FakeSupabase:
    def __init__(self):
        self.users = {GOOD_TOKEN: {"id": CALLER_ID, "email": CALLER_EMAIL}}
        self.profiles = {CALLER_ID: "Jane Owner"}
        self.activities = []
        self.requests = []
        self.activity_insert_status = 201
        self.activity_insert_error = None
        self.profile_status = 200

    def calls_to(self, path, method=None):
        return [
            r for r in self.requests
            if r.url.path == path and (method is None or r.method == method)
        ]

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        token = request.headers.get("authorization", "").removeprefix("Bearer ")
        path = request.url.path

        if path == "/auth/v1/user":
            user = self.users.get(token)
            if not user:
                return httpx.Response(401, json={"msg": "invalid JWT"})
            return httpx.Response(200, json=user)

        if path == "/rest/v1/user_profiles":
            if self.profile_status != 200:
                return httpx.Response(self.profile_status, json={"message": "boom"})
            params = parse_qs(request.url.query.decode())
            user_id = params["id"][0].removeprefix("eq.")
            name = self.profiles.get(user_id)
            rows = [{"full_name": name}] if user_id in self.profiles else []
            return httpx.Response(200, json=rows)

        if path == "/rest/v1/activities" and request.method == "POST":
            if self.activity_insert_error is not None:
                raise self.activity_insert_error
            if self.activity_insert_status >= 300:
                return httpx.Response(self.activity_insert_status, json={"message": "insert failed"})
            self.activities.extend(json.loads(request.content))
            return httpx.Response(201)

        if path == "/rest/v1/activities" and request.method == "GET":
            params = parse_qs(request.url.query.decode())
            user_id = params["user_id"][0].removeprefix("eq.")
            rows = [
                {"id": f"act-{i}", **row}
                for i, row in enumerate(self.activities)
                if row["user_id"] == user_id
            ]
            if "type" in params:
                wanted = params["type"][0].removeprefix("eq.")
                rows = [row for row in rows if row["type"] == wanted]
            return httpx.Response(200, json=rows[: int(params["limit"][0])])

        return httpx.Response(404, json={"message": f"unexpected path {path}"})


# ── Fake Resend ───────────────────────────────────────────────────────────────

class FakeResend:
    def __init__(self):
        self.requests = []
        self.status = 200
        self.body = {"id": "abc123"}
        self.raw_text = None
        self.error = None

    @property
    def payloads(self):
        return [json.loads(r.content) for r in self.requests]

    def reply(self, status, body=None, raw_text=None):
        self.status = status
        self.body = body
        self.raw_text = raw_text

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        if self.raw_text is not None:
            return httpx.Response(self.status, text=self.raw_text)
        return httpx.Response(self.status, json=self.body)


# ── App fixtures ──────────────────────────────────────────────────────────────

@pytest.fixture
def supabase():
    return FakeSupabase()


@pytest.fixture
def resend():
    return FakeResend()


@pytest.fixture
def settings():
    return Settings(
        resend_api_key="re_test_key",
        supabase_url=SUPABASE_URL,
        supabase_anon_key="anon-key",
        bulk_send_delay_ms=0,
    )


@pytest.fixture
def make_client(supabase, resend):
    """Build a TestClient for arbitrary settings, wired to the fakes."""
    clients = []

    def _make(settings, **kwargs):
        app = create_app(
            settings,
            auth_transport=httpx.MockTransport(supabase.handle),
            provider_transport=httpx.MockTransport(resend.handle),
            **kwargs,
        )
        client = TestClient(app)
        client.__enter__()
        clients.append(client)
        return client

    yield _make

    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture
def client(make_client, settings):
    return make_client(settings)


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {GOOD_TOKEN}"}


@pytest.fixture
def valid_email():
    return {
        "to": "jane@example.com",
        "subject": "Invoice #1042",
        "body": "Hello\n\nVisit https://example.com today",
    }
