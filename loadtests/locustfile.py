"""Locust scenarios for portal login, session checks and public reads."""

from __future__ import annotations

import os
from dataclasses import dataclass

from locust import HttpUser, between, events, task

SESSION_COOKIE = "session_token"


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_percent(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class LoadSettings:
    """Credentials and pass/fail thresholds for one load run."""

    email: str
    password: str
    allow_429: bool
    require_rate_limit: bool
    max_failure_rate_pct: float


SETTINGS = LoadSettings(
    email=os.environ.get("PORTAL_LOAD_EMAIL", "loadtest@example.edu"),
    password=os.environ.get("PORTAL_LOAD_PASSWORD", "Password123!"),
    allow_429=_env_flag("PORTAL_LOAD_ALLOW_429", False),
    require_rate_limit=_env_flag("PORTAL_LOAD_REQUIRE_RATE_LIMIT", False),
    max_failure_rate_pct=_env_percent("PORTAL_LOAD_MAX_FAILURE_RATE_PCT", 0.1),
)

_rate_limit_observed = False


def _accept_rate_limit(response) -> bool:
    global _rate_limit_observed
    if response.status_code == 429 and SETTINGS.allow_429:
        _rate_limit_observed = True
        response.success()
        return True
    return False


class LoginFlowUser(HttpUser):
    """Repeated cookie logins; every success must mint a session cookie."""

    wait_time = between(0.05, 0.2)
    weight = 1

    @task
    def login(self) -> None:
        self.client.cookies.clear()
        with self.client.post(
            "/api/auth/login",
            json={"email": SETTINGS.email, "password": SETTINGS.password},
            name="POST /api/auth/login",
            catch_response=True,
        ) as response:
            if response.status_code == 200:
                if response.cookies.get(SESSION_COOKIE) and response.json().get("success"):
                    response.success()
                else:
                    response.failure("200 without session cookie or success envelope")
                return
            if _accept_rate_limit(response):
                return
            response.failure(f"unexpected status={response.status_code}")


class SignedInReader(HttpUser):
    """Logs in once, then alternates session checks with management reads."""

    wait_time = between(0.05, 0.2)
    weight = 2

    def on_start(self) -> None:
        response = self.client.post(
            "/api/auth/login",
            json={"email": SETTINGS.email, "password": SETTINGS.password},
            name="POST /api/auth/login [bootstrap]",
        )
        if response.status_code != 200:
            print(f"[loadtest] reader bootstrap failed with status={response.status_code}")

    def on_stop(self) -> None:
        self.client.post("/api/auth/logout", name="POST /api/auth/logout")

    @task(3)
    def check_session(self) -> None:
        with self.client.get(
            "/api/auth/check", name="GET /api/auth/check", catch_response=True
        ) as response:
            if response.status_code == 200:
                response.success()
                return
            if _accept_rate_limit(response):
                return
            response.failure(f"unexpected status={response.status_code}")

    @task(1)
    def dashboard(self) -> None:
        self.client.get("/api/admin/dashboard/stats", name="GET /api/admin/dashboard/stats")


class PublicVisitor(HttpUser):
    """Anonymous paging through the public notes and notices feeds."""

    wait_time = between(0.1, 0.5)
    weight = 3

    @task(2)
    def notices(self) -> None:
        self.client.get("/api/public/notices", params={"page": 0}, name="GET /api/public/notices")

    @task(1)
    def notes(self) -> None:
        with self.client.get(
            "/api/public/notes",
            params={"page": 0, "page_size": 20},
            name="GET /api/public/notes",
            catch_response=True,
        ) as response:
            if response.status_code != 200:
                if not _accept_rate_limit(response):
                    response.failure(f"unexpected status={response.status_code}")
                return
            data = response.json().get("data", {})
            if {"items", "has_more", "total"} <= set(data):
                response.success()
            else:
                response.failure("page payload missing items/has_more/total")


@events.quitting.add_listener
def _on_quitting(environment, **_kwargs) -> None:
    """Fail the run when failures exceed the allowed rate or an expected 429 never shows up."""
    failure_rate_pct = environment.stats.total.fail_ratio * 100.0
    if SETTINGS.max_failure_rate_pct >= 0 and failure_rate_pct > SETTINGS.max_failure_rate_pct:
        print(
            f"[loadtest] failure rate {failure_rate_pct:.3f}% exceeded "
            f"max {SETTINGS.max_failure_rate_pct:.3f}%"
        )
        environment.process_exit_code = 1

    if SETTINGS.require_rate_limit and not _rate_limit_observed:
        print("[loadtest] expected at least one 429 response but none were observed")
        environment.process_exit_code = 1
