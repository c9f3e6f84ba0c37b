"""Layout serialization and checkout submission.

The engine does not take payments. On submit it serializes the committed
layout and posts it, with the informational price, to an external checkout
endpoint. The only part of the reply it reads is an optional redirect URL.

Features:
- camelCase JSON payload (artwork bytes excluded)
- httpx.AsyncClient transport
- retry on transport errors via tenacity
- failures surface as an unsuccessful CheckoutResult, never an exception

Usage:
    async with CheckoutClient() as client:
        result = await client.submit(store.state)
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_random_exponential,
)
from tenacity.wait import wait_base

from gangsheet.config import Settings, settings
from gangsheet.metrics import get_sheet_usage
from gangsheet.pricing import get_subtotal, get_unit_price
from gangsheet.store.models import GangBuilderState

logger = logging.getLogger(__name__)

EMPTY_SHEET_MESSAGE = "Please add at least one design to the sheet before adding to cart."
FAILURE_MESSAGE = "Something went wrong while submitting your order. Please try again."
SUCCESS_MESSAGE = "Order received."


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class UsageStatsPayload(_CamelModel):
    used_area_in: float
    sheet_area_in: float
    usage_pct: float
    instance_count: int


class InstancePayload(_CamelModel):
    id: str
    design_id: str
    x_in: float
    y_in: float
    width_in: float
    height_in: float
    rotation_deg: int = 0


class DesignPayload(_CamelModel):
    id: str
    name: str
    natural_width_px: int
    natural_height_px: int
    width_in: float
    height_in: float


class LayoutPayload(_CamelModel):
    """Serialized layout handed to the checkout collaborator.

    Dump with ``model_dump(by_alias=True)`` for the wire form:
    ``{sheetSizeId, quantity, usageStats, instanceLayout, designFiles}``.
    """

    sheet_size_id: str
    quantity: int
    usage_stats: UsageStatsPayload
    instance_layout: list[InstancePayload] = Field(default_factory=list)
    design_files: list[DesignPayload] = Field(default_factory=list)


def serialize_layout(state: GangBuilderState) -> LayoutPayload:
    """Build the outbound layout payload from a snapshot.

    Args:
        state: Builder snapshot to serialize.

    Returns:
        LayoutPayload; image data is never included.
    """
    usage = get_sheet_usage(state)
    return LayoutPayload(
        sheet_size_id=state.selected_sheet_size_id,
        quantity=state.sheet_quantity,
        usage_stats=UsageStatsPayload(**usage.model_dump()),
        instance_layout=[
            InstancePayload(
                id=inst.id,
                design_id=inst.design_id,
                x_in=inst.x_in,
                y_in=inst.y_in,
                width_in=inst.width_in,
                height_in=inst.height_in,
                rotation_deg=int(inst.rotation),
            )
            for inst in state.instances
        ],
        design_files=[
            DesignPayload(
                id=design.id,
                name=design.name,
                natural_width_px=design.natural_width_px,
                natural_height_px=design.natural_height_px,
                width_in=design.width_in,
                height_in=design.height_in,
            )
            for design in state.design_files
        ],
    )


class CheckoutError(Exception):
    """Raised when the checkout endpoint rejects or cannot take a submission.

    Converted to an unsuccessful CheckoutResult by CheckoutClient.submit().
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        cause: Exception | None = None,
    ) -> None:
        """Initialize checkout error.

        Args:
            message: Human-readable error description.
            status_code: HTTP status of the reply, if one arrived.
            cause: Original exception that caused this error.
        """
        self.status_code = status_code
        self.cause = cause
        super().__init__(message)


@dataclass(frozen=True)
class CheckoutResult:
    """Outcome of a checkout submission.

    Attributes:
        success: True if the endpoint accepted the order.
        redirect_url: Checkout page to send the user to, if provided.
        message: User-facing status text.
    """

    success: bool
    redirect_url: str | None = None
    message: str = ""


def build_form(state: GangBuilderState) -> dict[str, str]:
    """Form fields posted to the checkout endpoint."""
    sheet = state.sheet_size
    unit_price = get_unit_price(state.selected_sheet_size_id, state.sheet_quantity)
    total_price = get_subtotal(state.selected_sheet_size_id, state.sheet_quantity)
    layout = serialize_layout(state).model_dump(by_alias=True)
    return {
        "mode": "gang-sheet",
        "size": sheet.label if sheet is not None else state.selected_sheet_size_id,
        "quantity": str(state.sheet_quantity),
        "unitPrice": str(unit_price) if unit_price else "",
        "totalPrice": str(total_price) if total_price else "",
        "gangSheetData": json.dumps(layout),
    }


class CheckoutClient:
    """Posts layouts to the configured checkout endpoint.

    The endpoint comes from settings.CHECKOUT_URL unless passed explicitly;
    a missing endpoint raises ConfigError at construction time.
    """

    def __init__(
        self,
        url: str | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        config: Settings | None = None,
        wait: wait_base | None = None,
    ) -> None:
        """Initialize the checkout client.

        Args:
            url: Endpoint override.
            client: Pre-built httpx client (owned by the caller).
            config: Settings to read the endpoint, timeout and retries from.
            wait: Tenacity wait strategy between retries.
        """
        self._settings = config or settings
        self.url = url or self._settings.require_checkout_url()
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=self._settings.CHECKOUT_TIMEOUT_SECONDS
        )
        self._max_attempts = max(1, self._settings.CHECKOUT_MAX_RETRIES)
        self._wait = wait or wait_random_exponential(min=0.5, max=8)

    async def __aenter__(self) -> CheckoutClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying httpx client if this object created it."""
        if self._owns_client:
            await self._client.aclose()

    async def submit(self, state: GangBuilderState) -> CheckoutResult:
        """Submit the layout for checkout.

        Args:
            state: Snapshot to submit.

        Returns:
            CheckoutResult; ``success=False`` for an empty sheet, a non-2xx
            reply or a transport failure after retries.
        """
        if not state.instances:
            return CheckoutResult(success=False, message=EMPTY_SHEET_MESSAGE)

        form = build_form(state)
        try:
            data = await self._post(form)
        except CheckoutError as e:
            logger.warning("Checkout submission failed: %s", e)
            return CheckoutResult(success=False, message=FAILURE_MESSAGE)

        redirect = data.get("checkoutUrl") if isinstance(data, dict) else None
        logger.info(
            "Checkout submitted: %d instances, redirect=%s",
            len(state.instances),
            bool(redirect),
        )
        return CheckoutResult(
            success=True,
            redirect_url=redirect or None,
            message=SUCCESS_MESSAGE,
        )

    async def _post(self, form: dict[str, str]) -> Any:
        try:
            async for attempt in AsyncRetrying(
                wait=self._wait,
                stop=stop_after_attempt(self._max_attempts),
                retry=retry_if_exception_type(httpx.TransportError),
                reraise=True,
            ):
                with attempt:
                    response = await self._client.post(self.url, data=form)
        except httpx.TransportError as e:
            raise CheckoutError(f"Checkout endpoint unreachable: {e}", cause=e) from e

        if response.is_error:
            text = response.text.strip()
            raise CheckoutError(
                text or f"Server responded with {response.status_code}",
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError:
            return {}
