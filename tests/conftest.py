"""Pytest configuration for the odatamcp test suite."""

from __future__ import annotations

import pytest

from odatamcp.config.serving_models import ToolToggles
from odatamcp.schema import SchemaModel
from tests._helpers.odata_service import FakeODataService, northwind_schema


@pytest.fixture
def service() -> FakeODataService:
    """Provide a fake OData service seeded with Northwind-style rows.

    Returns
    -------
    FakeODataService
        Service answering metadata, count, and listing requests.
    """
    return FakeODataService()


@pytest.fixture
def schema() -> SchemaModel:
    """Schema parsed from the bundled metadata document.

    Returns
    -------
    SchemaModel
        Products, Categories, and Order_Details entity sets.
    """
    return northwind_schema()


@pytest.fixture
def all_tools() -> ToolToggles:
    """Toggles with every tool kind enabled.

    Returns
    -------
    ToolToggles
        count, get, and filter switched on.
    """
    return ToolToggles(count=True, get=True, filter=True)
