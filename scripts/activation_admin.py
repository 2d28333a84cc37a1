import argparse
import os
import sys
from datetime import datetime, timezone
from typing import Any

import httpx

DEFAULT_API_URL = "http://localhost:8000"
ADMIN_SECRET_ENV = "NGAJ_ADMIN_SECRET"
API_URL_ENV = "NGAJ_ACTIVATION_API"
LABEL_WIDTH = 20


class AdminApiError(Exception):
    def __init__(self, message: str, status_code: int, error_code: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.error_code = error_code


class AdminClient:
    def __init__(self, api_url: str, admin_secret: str, transport: httpx.BaseTransport | None = None) -> None:
        self.api_url = api_url.rstrip("/")
        self.admin_secret = admin_secret
        self._transport = transport

    def create_key(self, label: str | None) -> dict[str, Any]:
        body = {"label": label} if label else {}
        return self._request("POST", "/api/v1/admin/keys", json_body=body)

    def list_keys(self) -> list[dict[str, Any]]:
        return self._request("GET", "/api/v1/admin/keys")["keys"]

    def get_key(self, key: str) -> dict[str, Any]:
        return self._request("GET", f"/api/v1/admin/keys/{key}")

    def revoke_key(self, key: str) -> dict[str, Any]:
        return self._request("DELETE", f"/api/v1/admin/keys/{key}")

    def _request(self, method: str, path: str, json_body: dict | None = None) -> dict[str, Any]:
        headers = {"Authorization": f"Bearer {self.admin_secret}"}
        try:
            with httpx.Client(timeout=httpx.Timeout(10), transport=self._transport) as client:
                response = client.request(method, f"{self.api_url}{path}", json=json_body, headers=headers)
        except httpx.RequestError as exc:
            raise AdminApiError(f"Request failed: {exc}", 0) from exc
        if response.status_code >= 400:
            try:
                payload = response.json()
            except ValueError:
                payload = {}
            raise AdminApiError(
                payload.get("message") or f"HTTP {response.status_code}",
                response.status_code,
                payload.get("error"),
            )
        return response.json()


def short_key(key: str) -> str:
    return f"...{key[-8:]}"


def truncate(value: str | None, width: int = LABEL_WIDTH) -> str:
    if not value:
        return "-"
    if len(value) <= width:
        return value
    return value[: width - 1] + "~"


def format_last_seen(value: str | None, now: datetime | None = None) -> str:
    if not value:
        return "never"
    now = now or datetime.now(timezone.utc)
    seen = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if seen.tzinfo is None:
        seen = seen.replace(tzinfo=timezone.utc)
    seconds = int((now - seen).total_seconds())
    if seconds < 60:
        return "just now"
    if seconds < 3600:
        return f"{seconds // 60}m ago"
    if seconds < 86400:
        return f"{seconds // 3600}h ago"
    return f"{seconds // 86400}d ago"


def format_key_row(entry: dict[str, Any], now: datetime | None = None) -> str:
    session = entry.get("current_session")
    last_seen = format_last_seen(session["last_heartbeat_at"] if session else None, now)
    if session and session.get("is_stale"):
        last_seen = f"{last_seen} (stale)"
    return "\t".join([short_key(entry["key"]), entry["status"], truncate(entry.get("label")), last_seen])


def print_key(entry: dict[str, Any]) -> None:
    print(f"key: {entry['key']}")
    print(f"status: {entry['status']}")
    print(f"label: {entry.get('label') or '-'}")
    print(f"created_at: {entry['created_at']}")
    session = entry.get("current_session")
    if not session:
        print("session: none")
        return
    print(f"device_fingerprint: {session['device_fingerprint']}")
    print(f"started_at: {session['started_at']}")
    print(f"last_heartbeat_at: {session['last_heartbeat_at']}")


def create_key(client: AdminClient, label: str | None) -> int:
    created = client.create_key(label)
    print("Activation key created:")
    print(created["key"])
    return 0


def list_keys(client: AdminClient) -> int:
    keys = client.list_keys()
    if not keys:
        print("No activation keys found")
        return 0
    for entry in keys:
        print(format_key_row(entry))
    return 0


def show_key(client: AdminClient, key: str) -> int:
    print_key(client.get_key(key))
    return 0


def revoke_key(client: AdminClient, key: str) -> int:
    revoked = client.revoke_key(key)
    print(f"Activation key {revoked['status']}: {revoked['key']}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Admin console for activation keys")
    parser.add_argument("--api-url", default=os.getenv(API_URL_ENV, DEFAULT_API_URL))
    subparsers = parser.add_subparsers(dest="command", required=True)

    create_parser = subparsers.add_parser("create")
    create_parser.add_argument("--label", default=None)

    subparsers.add_parser("list")

    get_parser = subparsers.add_parser("get")
    get_parser.add_argument("key")

    revoke_parser = subparsers.add_parser("revoke")
    revoke_parser.add_argument("key")

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    admin_secret = os.getenv(ADMIN_SECRET_ENV)
    if not admin_secret:
        print(f"{ADMIN_SECRET_ENV} is not set", file=sys.stderr)
        return 1
    client = AdminClient(args.api_url, admin_secret)

    try:
        if args.command == "create":
            return create_key(client, args.label)
        if args.command == "list":
            return list_keys(client)
        if args.command == "get":
            return show_key(client, args.key)
        if args.command == "revoke":
            return revoke_key(client, args.key)
    except AdminApiError as exc:
        if exc.error_code == "not_found":
            print("Activation key not found", file=sys.stderr)
        elif exc.error_code == "unauthorized":
            print("Admin secret rejected", file=sys.stderr)
        else:
            print(f"Error: {exc}", file=sys.stderr)
        return 1
    print("Unknown command")
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
