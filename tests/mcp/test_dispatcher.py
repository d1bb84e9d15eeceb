"""Tool-call dispatch: naming, gating, resolution, and error results."""

from __future__ import annotations

import logging

import pytest

from odatamcp.config.serving_models import ToolToggles
from odatamcp.mcp.backend import ODataBackend
from odatamcp.mcp.dispatcher import OperationDispatcher
from odatamcp.mcp.errors import ErrorKind
from odatamcp.mcp.models import InvocationResult, OperationKind
from odatamcp.mcp.observability import ServiceObservability
from odatamcp.schema import SchemaModel
from tests._helpers.odata_service import (
    CannedResponse,
    FakeODataService,
    decode_listing,
    invoke_tool,
    northwind_schema,
    run_with_backend,
)


def _error_code(result: InvocationResult) -> str | None:
    if not result.is_error or result.problem is None:
        pytest.fail(f"Expected an error result, got {result}")
    return result.problem.code


def test_count_tool_formats_count(service: FakeODataService) -> None:
    """count_* resolves casing and reports the count sentence."""
    result = invoke_tool(service, "count_products")
    if result.body != "The Products entity set contains 3 entities.":
        pytest.fail(f"Unexpected body: {result.body}")
    if service.last_request.url.path != "/Service.svc/Products/$count":
        pytest.fail(f"Unexpected path: {service.last_request.url.path}")


def test_count_tool_parse_failure(service: FakeODataService) -> None:
    """A non-numeric count body becomes a count_parse_failure result."""
    service.canned["/Products/$count"] = CannedResponse(text="n/a", content_type="text/plain")
    result = invoke_tool(service, "count_products")
    if _error_code(result) != ErrorKind.COUNT_PARSE_FAILURE.value:
        pytest.fail(f"Unexpected result: {result}")


def test_get_tool_lists_entities(service: FakeODataService) -> None:
    """get_* returns the entity array with count and applied top."""
    result = invoke_tool(service, "get_products", {"top": "2"})
    body = result.body or ""
    if not body.startswith("Retrieved 2 entities from Products (top 2):\n\n"):
        pytest.fail(f"Unexpected header: {body.splitlines()[0] if body else body}")
    names = [row["ProductName"] for row in decode_listing(body)]  # type: ignore[index]
    if names != ["Chai", "Chang"]:
        pytest.fail(f"Unexpected rows: {names}")


def test_get_tool_clamps_top(service: FakeODataService) -> None:
    """An oversized top is clamped before the request is sent."""
    invoke_tool(service, "get_products", {"top": 500})
    if service.last_request.url.params.get("$top") != "100":
        pytest.fail(f"Expected clamped $top=100, got {service.last_request.url}")


def test_get_tool_fallback_without_envelope(service: FakeODataService) -> None:
    """A body without value is passed through and the call still succeeds."""
    service.canned["/Products"] = CannedResponse(text='{"items": []}')
    result = invoke_tool(service, "get_products")
    if result.is_error or result.body != 'Retrieved data from Products (top 10):\n\n{"items": []}':
        pytest.fail(f"Unexpected result: {result}")


def test_filter_tool_sends_ordered_query(service: FakeODataService, all_tools: ToolToggles) -> None:
    """filter_* echoes the ordered query string in its header."""
    result = invoke_tool(
        service,
        "filter_products",
        {"skip": 1, "orderby": "ProductName", "top": 1},
        toggles=all_tools,
    )
    header = (result.body or "").split("\n", 1)[0]
    expected = "Filtered 1 entities from Products with query: $orderby=ProductName&$top=1&$skip=1:"
    if header != expected:
        pytest.fail(f"Unexpected header: {header}")


def test_filter_disabled_by_default(service: FakeODataService) -> None:
    """filter_* is rejected with the enabling flag while filter is off."""
    result = invoke_tool(service, "filter_products", {"filter": "UnitPrice gt 1"})
    if _error_code(result) != ErrorKind.OPERATION_DISABLED.value:
        pytest.fail(f"Unexpected result: {result}")
    detail = result.problem.detail if result.problem else ""
    if "+f" not in (detail or ""):
        pytest.fail(f"Message must name the +f flag: {detail}")
    if service.requests:
        pytest.fail("Disabled tools must not reach the service")


@pytest.mark.parametrize(
    ("toggles", "name", "flag"),
    [
        (ToolToggles(count=False), "count_products", "+c"),
        (ToolToggles(get=False), "get_products", "+g"),
    ],
)
def test_disabled_kinds_name_their_flag(
    service: FakeODataService, toggles: ToolToggles, name: str, flag: str
) -> None:
    """Every kind reports its own enabling flag."""
    result = invoke_tool(service, name, toggles=toggles)
    if _error_code(result) != ErrorKind.OPERATION_DISABLED.value:
        pytest.fail(f"Unexpected result: {result}")
    if result.problem is None or result.problem.data != {"kind": name.split("_")[0], "flag": flag}:
        pytest.fail(f"Unexpected problem data: {result.problem}")


def test_unknown_operation(service: FakeODataService) -> None:
    """Names without a known prefix are unknown operations."""
    result = invoke_tool(service, "frobnicate_widgets")
    if _error_code(result) != ErrorKind.UNKNOWN_OPERATION.value:
        pytest.fail(f"Unexpected result: {result}")


@pytest.mark.parametrize("name", [None, ""])
def test_missing_operation_name(service: FakeODataService, name: str | None) -> None:
    """Calls without a name are rejected before any I/O."""
    result = invoke_tool(service, name)
    if _error_code(result) != ErrorKind.MISSING_OPERATION_NAME.value or service.requests:
        pytest.fail(f"Unexpected result: {result}")


def test_unresolved_collection_passes_through(service: FakeODataService) -> None:
    """Unknown collection tokens reach the service, which reports not found."""
    result = invoke_tool(service, "get_widgets")
    if service.last_request.url.path != "/Service.svc/widgets":
        pytest.fail(f"Token was not passed through: {service.last_request.url.path}")
    if _error_code(result) != ErrorKind.UPSTREAM_ERROR.value:
        pytest.fail(f"Unexpected result: {result}")


def test_resolve_operation_recovers_casing(schema: SchemaModel) -> None:
    """Tokens resolve case-insensitively to canonical names."""

    async def _scenario(backend: ODataBackend) -> tuple[OperationKind, str, bool]:
        dispatcher = OperationDispatcher(schema=schema, toggles=ToolToggles(), backend=backend)
        resolved = dispatcher.resolve_operation("get_ORDER_details")
        return resolved.kind, resolved.collection, resolved.resolved

    outcome = run_with_backend(FakeODataService(), _scenario)
    if outcome != (OperationKind.GET, "Order_Details", True):
        pytest.fail(f"Unexpected resolution: {outcome}")


def test_errors_do_not_disable_later_calls(service: FakeODataService) -> None:
    """A failed call leaves the dispatcher usable."""

    async def _scenario(backend: ODataBackend) -> list[InvocationResult]:
        dispatcher = OperationDispatcher(
            schema=northwind_schema(),
            toggles=ToolToggles(),
            backend=backend,
            observability=ServiceObservability(enabled=False),
        )
        catalog_before = dispatcher.list_operations()
        results = [
            await dispatcher.invoke_operation("frobnicate", {}),
            await dispatcher.invoke_operation("count_categories", {}),
        ]
        if dispatcher.list_operations() != catalog_before:
            pytest.fail("Catalog changed after an error")
        return results

    failed, succeeded = run_with_backend(service, _scenario)
    if not failed.is_error or succeeded.body != "The Categories entity set contains 2 entities.":
        pytest.fail(f"Unexpected results: {failed}, {succeeded}")


def test_calls_are_logged(service: FakeODataService, caplog: pytest.LogCaptureFixture) -> None:
    """Each invocation emits a service_call log record."""
    with caplog.at_level(logging.INFO, logger="odatamcp.mcp.calls"):
        invoke_tool(service, "count_products")
    messages = [r.getMessage() for r in caplog.records if r.name == "odatamcp.mcp.calls"]
    if not messages or "'name': 'count_products'" not in messages[-1]:
        pytest.fail(f"Missing service_call log: {messages}")


@pytest.mark.parametrize("name", ["get_bad\x00name", "count_line\nbreak"])
def test_control_characters_in_name_return_error_result(service: FakeODataService, name: str) -> None:
    """Names that cannot form a request URL yield an error result, not an exception."""
    result = invoke_tool(service, name)
    if _error_code(result) != ErrorKind.UPSTREAM_ERROR.value or service.requests:
        pytest.fail(f"Unexpected result: {result}")


def test_deeply_nested_listing_returns_error_result(service: FakeODataService) -> None:
    """A body too deeply nested to decode is reported for that call only."""
    service.canned["/Products"] = CannedResponse(text="[" * 100_000 + "]" * 100_000)
    result = invoke_tool(service, "get_products")
    if _error_code(result) != ErrorKind.MALFORMED_RESPONSE_BODY.value:
        pytest.fail(f"Unexpected result: {result}")
