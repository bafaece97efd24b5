import itertools
import json
from typing import Any, Dict, List, Optional, Tuple

import httpx
import pytest

from chatdomain.core.config import Settings
from chatdomain.services.domain_service.registrars.namecom import NameComRegistrar
from chatdomain.services.domains.dns_providers.cloudflare import CloudflareDNSProvider
from chatdomain.services.domains.provisioner import DomainProvisioner, ProvisioningConfig

CLOUDFLARE_PREFIX = "/client/v4"
NAMECOM_PREFIX = "/v4"

CREATE_OPERATIONS = {"create_zone", "create_record", "create_route"}


class FakeProviderAPI:
    """
    Stateful stand-in for the Cloudflare and Name.com HTTP APIs.

    Every request is recorded as an operation name; ``created`` lists the
    resources that were actually created.
    """

    def __init__(self, nameservers: Optional[List[str]] = None):
        self.nameservers = nameservers or ["ns1.cloudflare.com", "ns2.cloudflare.com"]
        self.zones: Dict[str, Dict[str, Any]] = {}
        self.records: Dict[str, List[Dict[str, Any]]] = {}
        self.routes: Dict[str, List[Dict[str, Any]]] = {}
        self.delegations: Dict[str, List[str]] = {}
        self.registrations: Dict[str, Dict[str, Any]] = {}
        self.operations: List[str] = []
        self.created: List[Tuple[str, str]] = []
        self.requests: List[httpx.Request] = []
        self.failures: Dict[str, Tuple[int, Any]] = {}
        self.hide_zone_lookup = False
        self.hide_route_lookup = False
        self.next_ids: Dict[str, List[str]] = {}
        self._ids = itertools.count(1)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def fail(self, operation: str, status: int, body: Any) -> None:
        self.failures[operation] = (status, body)

    def count(self, operation: str) -> int:
        return self.operations.count(operation)

    def creations(self) -> List[str]:
        return [op for op in self.operations if op in CREATE_OPERATIONS]

    def _new_id(self, kind: str) -> str:
        queued = self.next_ids.get(kind)
        if queued:
            return queued.pop(0)
        return f"{kind}-{next(self._ids)}"

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        body = json.loads(request.content) if request.content else {}

        if request.url.host == "api.cloudflare.com":
            path = request.url.path[len(CLOUDFLARE_PREFIX):]
            operation, respond = self._route_cloudflare(request.method, path, request, body)
        elif request.url.host == "api.name.com":
            path = request.url.path[len(NAMECOM_PREFIX):]
            operation, respond = self._route_namecom(request.method, path, body)
        else:
            return httpx.Response(404, json={"message": "unknown host"})

        self.operations.append(operation)
        if operation in self.failures:
            status, payload = self.failures[operation]
            return httpx.Response(status, json=payload)
        return respond()

    # Cloudflare

    @staticmethod
    def _cf_ok(result: Any, status: int = 200) -> httpx.Response:
        return httpx.Response(status, json={"success": True, "errors": [], "messages": [], "result": result})

    @staticmethod
    def _cf_error(code: int, message: str, status: int = 400) -> httpx.Response:
        return httpx.Response(
            status,
            json={"success": False, "errors": [{"code": code, "message": message}], "messages": [], "result": None},
        )

    def _route_cloudflare(self, method: str, path: str, request: httpx.Request, body: Dict[str, Any]):
        parts = path.strip("/").split("/")

        if parts == ["zones"] and method == "POST":
            return "create_zone", lambda: self._create_zone(body)
        if parts == ["zones"] and method == "GET":
            return "find_zone", lambda: self._find_zone(request.url.params.get("name"))
        if len(parts) == 2 and parts[0] == "zones" and method == "GET":
            return "get_zone", lambda: self._get_zone(parts[1])
        if len(parts) == 3 and parts[0] == "zones" and parts[2] == "dns_records":
            if method == "GET":
                return "list_records", lambda: self._list_records(parts[1], request.url.params)
            return "create_record", lambda: self._create_record(parts[1], body)
        if len(parts) == 4 and parts[0] == "zones" and parts[2:] == ["workers", "routes"]:
            if method == "GET":
                return "list_routes", lambda: self._list_routes(parts[1])
            return "create_route", lambda: self._create_route(parts[1], body)
        if len(parts) == 4 and parts[0] == "accounts" and parts[2:] == ["tokens", "verify"]:
            return "verify_token", lambda: self._cf_ok({"id": "token-1", "status": "active"})
        return "unknown", lambda: self._cf_error(7003, "Could not route to " + path, status=404)

    def _create_zone(self, body: Dict[str, Any]) -> httpx.Response:
        name = body["name"]
        if name in self.zones:
            return self._cf_error(1061, f"{name} already exists")
        zone = {
            "id": self._new_id("zone"),
            "name": name,
            "status": "pending",
            "paused": False,
            "type": "full",
            "name_servers": list(self.nameservers),
            "original_name_servers": [],
        }
        self.zones[name] = zone
        self.records[zone["id"]] = []
        self.routes[zone["id"]] = []
        self.created.append(("zone", zone["id"]))
        return self._cf_ok(zone)

    def _find_zone(self, name: Optional[str]) -> httpx.Response:
        zone = self.zones.get(name)
        if zone is None or self.hide_zone_lookup:
            return self._cf_ok([])
        return self._cf_ok([zone])

    def _get_zone(self, zone_id: str) -> httpx.Response:
        zone = next((zone for zone in self.zones.values() if zone["id"] == zone_id), None)
        if zone is None:
            return self._cf_error(1001, "Invalid zone identifier", status=404)
        return self._cf_ok(zone)

    def _zone_name(self, zone_id: str) -> str:
        return next(zone["name"] for zone in self.zones.values() if zone["id"] == zone_id)

    def _list_records(self, zone_id: str, params: httpx.QueryParams) -> httpx.Response:
        records = self.records.get(zone_id, [])
        page = int(params.get("page", 1))
        per_page = int(params.get("per_page", 100))
        start = (page - 1) * per_page
        total_pages = max(1, -(-len(records) // per_page))
        return httpx.Response(200, json={
            "success": True,
            "errors": [],
            "messages": [],
            "result": records[start:start + per_page],
            "result_info": {
                "page": page,
                "per_page": per_page,
                "count": len(records[start:start + per_page]),
                "total_count": len(records),
                "total_pages": total_pages,
            },
        })

    def _create_record(self, zone_id: str, body: Dict[str, Any]) -> httpx.Response:
        zone_name = self._zone_name(zone_id)
        name = body["name"]
        if name == "@":
            name = zone_name
        elif not name.endswith(zone_name):
            name = f"{name}.{zone_name}"
        record = {
            "id": self._new_id("record"),
            "type": body["type"],
            "name": name,
            "content": body["content"],
            "proxied": body.get("proxied", False),
            "ttl": body.get("ttl", 1),
        }
        self.records[zone_id].append(record)
        self.created.append(("record", record["id"]))
        return self._cf_ok(record)

    def _create_route(self, zone_id: str, body: Dict[str, Any]) -> httpx.Response:
        if any(route["pattern"] == body["pattern"] for route in self.routes[zone_id]):
            return self._cf_error(10020, "A route with the same pattern already exists")
        route = {"id": self._new_id("route"), "pattern": body["pattern"], "script": body["script"]}
        self.routes[zone_id].append(route)
        self.created.append(("route", route["id"]))
        return self._cf_ok({"id": route["id"]})

    def _list_routes(self, zone_id: str) -> httpx.Response:
        if self.hide_route_lookup:
            return self._cf_ok([])
        return self._cf_ok(self.routes.get(zone_id, []))

    # Name.com

    def _route_namecom(self, method: str, path: str, body: Dict[str, Any]):
        if path.endswith(":setNameservers"):
            domain = path[len("/domains/"):-len(":setNameservers")]
            return "set_nameservers", lambda: self._set_nameservers(domain, body)
        if path == "/domains:checkAvailability":
            return "check_availability", lambda: httpx.Response(200, json={
                "results": [
                    {"domainName": name, "purchasable": True, "purchasePrice": 12.99, "renewalPrice": 14.99}
                    for name in body["domainNames"]
                ]
            })
        if path == "/domains" and method == "POST":
            return "register_domain", lambda: self._register(body)
        if path.startswith("/domains/") and method == "GET":
            return "get_domain", lambda: self._get_domain(path[len("/domains/"):])
        if path == "/hello":
            return "hello", lambda: httpx.Response(200, json={"username": "tester", "motd": "hi"})
        return "unknown", lambda: httpx.Response(404, json={"message": "Not Found"})

    def _set_nameservers(self, domain: str, body: Dict[str, Any]) -> httpx.Response:
        self.delegations[domain] = list(body["nameservers"])
        return httpx.Response(200, json={"domainName": domain, "nameservers": body["nameservers"]})

    def _get_domain(self, domain: str) -> httpx.Response:
        if domain not in self.registrations and domain not in self.delegations:
            return httpx.Response(404, json={"message": "Not Found"})
        return httpx.Response(200, json={
            "domainName": domain,
            "nameservers": self.delegations.get(domain, ["ns1.name.com"]),
            "expireDate": "2027-10-18T00:00:00Z",
            "autorenewEnabled": True,
            "locked": True,
        })

    def _register(self, body: Dict[str, Any]) -> httpx.Response:
        domain = body["domain"]["domainName"]
        self.registrations[domain] = body
        return httpx.Response(200, json={
            "domain": {"domainName": domain, "nameservers": ["ns1.name.com"], "expireDate": "2027-10-18T00:00:00Z"},
            "order": 4242,
            "totalPaid": body["purchasePrice"],
        })


@pytest.fixture
def test_settings():
    return Settings(
        _env_file=None,
        CLOUDFLARE_API_TOKEN="test-token",
        CLOUDFLARE_ACCOUNT_ID="test-account",
        NAMECOM_USERNAME="tester",
        NAMECOM_API_TOKEN="namecom-token",
        STRIPE_WEBHOOK_SECRET="whsec_test_secret",
        ADMIN_API_KEY="admin-key",
        CLOUDFLARE_WORKER_SCRIPT="chat-domain-router",
        PROVISIONING_MAX_ATTEMPTS=3,
    )


@pytest.fixture
def fake_api():
    return FakeProviderAPI()


@pytest.fixture
def cloudflare(fake_api):
    return CloudflareDNSProvider(api_token="test-token", account_id="test-account", transport=fake_api.transport)


@pytest.fixture
def namecom(fake_api):
    return NameComRegistrar(username="tester", api_token="namecom-token", transport=fake_api.transport)


@pytest.fixture
def provisioner(cloudflare, namecom):
    return DomainProvisioner(cloudflare, namecom, ProvisioningConfig(worker_script="chat-domain-router"))
