"""Unit tests for customer and tax rate provisioning."""

from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from stripe_checkout.models.order import Order
from stripe_checkout.models.settings import StripeCheckoutSettings
from stripe_checkout.services.provisioning import (
    RequestContext,
    build_customer_params,
    get_or_create_customer,
    get_or_create_tax_rate,
)


# === Customer Tests ===


class TestCustomerProvisioning:
    """Customers are updated when the order already names one."""

    def test_customer_params_from_order(self, settings: StripeCheckoutSettings, order: Order):
        params = build_customer_params(settings, order)

        assert params["name"] == "Anna Jonsdottir"
        assert params["email"] == "anna@example.com"
        assert params["description"] == "ORDER-01234-56"
        assert params["address"] == {
            "line1": "Laugavegur 1",
            "line2": "",
            "city": "Reykjavik",
            "state": "",
            "postal_code": "101",
            "country": "IS",
        }
        assert params["metadata"] == {"billingCountry": "IS", "billingZipCode": "101"}

    @pytest.mark.asyncio
    async def test_creates_customer_when_none_stored(
        self, ctx: RequestContext, order: Order, mock_stripe_client: MagicMock
    ):
        mock_stripe_client.customers.create_async.return_value = {"id": "cus_new"}

        customer_id = await get_or_create_customer(ctx, order)

        assert customer_id == "cus_new"
        mock_stripe_client.customers.create_async.assert_awaited_once()
        mock_stripe_client.customers.update_async.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_updates_stored_customer(
        self, ctx: RequestContext, order: Order, mock_stripe_client: MagicMock
    ):
        order = order.model_copy(
            update={"properties": {**order.properties, "processorCustomerId": "cus_existing"}}
        )
        mock_stripe_client.customers.update_async.return_value = {"id": "cus_existing"}

        customer_id = await get_or_create_customer(ctx, order)

        assert customer_id == "cus_existing"
        args = mock_stripe_client.customers.update_async.call_args
        assert args.args[0] == "cus_existing"
        assert args.kwargs["params"]["metadata"]["billingCountry"] == "IS"
        mock_stripe_client.customers.create_async.assert_not_awaited()


# === Tax Rate Tests ===


class TestTaxRateProvisioning:
    """Tax rates are resolved by (display name, percentage, inclusive)."""

    @pytest.mark.asyncio
    async def test_existing_rate_reused(self, ctx: RequestContext, mock_stripe_client: MagicMock):
        mock_stripe_client.tax_rates.list_async.return_value = {
            "data": [
                {"id": "txr_other", "display_name": "VAT", "percentage": 24.0, "inclusive": False},
                {
                    "id": "txr_match",
                    "display_name": "Subscription Tax",
                    "percentage": 24.0,
                    "inclusive": False,
                },
            ]
        }

        rate = await get_or_create_tax_rate(ctx, "Subscription Tax", Decimal("24.00"), False)

        assert rate.id == "txr_match"
        mock_stripe_client.tax_rates.create_async.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_inclusive_flag_is_part_of_identity(
        self, ctx: RequestContext, mock_stripe_client: MagicMock
    ):
        mock_stripe_client.tax_rates.list_async.return_value = {
            "data": [
                {
                    "id": "txr_exclusive",
                    "display_name": "Subscription Tax",
                    "percentage": 24.0,
                    "inclusive": False,
                },
            ]
        }
        mock_stripe_client.tax_rates.create_async.return_value = {"id": "txr_inclusive"}

        rate = await get_or_create_tax_rate(ctx, "Subscription Tax", Decimal("24"), True)

        assert rate.id == "txr_inclusive"

    @pytest.mark.asyncio
    async def test_match_on_later_page_is_reused(
        self, ctx: RequestContext, mock_stripe_client: MagicMock
    ):
        mock_stripe_client.tax_rates.list_async.side_effect = [
            {
                "data": [
                    {"id": "txr_vat", "display_name": "VAT", "percentage": 24.0, "inclusive": False}
                ],
                "has_more": True,
            },
            {
                "data": [
                    {
                        "id": "txr_page_two",
                        "display_name": "Subscription Tax",
                        "percentage": 24.0,
                        "inclusive": False,
                    }
                ],
                "has_more": False,
            },
        ]

        rate = await get_or_create_tax_rate(ctx, "Subscription Tax", Decimal("24"), False)

        assert rate.id == "txr_page_two"
        assert mock_stripe_client.tax_rates.list_async.await_count == 2
        mock_stripe_client.tax_rates.create_async.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_duplicate_lookups_list_once_and_create_once(
        self, ctx: RequestContext, mock_stripe_client: MagicMock
    ):
        mock_stripe_client.tax_rates.list_async.return_value = {"data": []}
        mock_stripe_client.tax_rates.create_async.return_value = {
            "id": "txr_new",
            "display_name": "Subscription Tax",
            "percentage": 11.0,
            "inclusive": False,
        }

        first = await get_or_create_tax_rate(ctx, "Subscription Tax", Decimal("11"), False)
        second = await get_or_create_tax_rate(ctx, "Subscription Tax", Decimal("11"), False)

        assert first.id == second.id == "txr_new"
        assert mock_stripe_client.tax_rates.list_async.await_count == 1
        assert mock_stripe_client.tax_rates.create_async.await_count == 1

    @pytest.mark.asyncio
    async def test_new_context_lists_again(
        self,
        settings: StripeCheckoutSettings,
        ctx: RequestContext,
        mock_stripe_client: MagicMock,
    ):
        mock_stripe_client.tax_rates.list_async.return_value = {"data": []}
        mock_stripe_client.tax_rates.create_async.return_value = {"id": "txr_new"}

        await get_or_create_tax_rate(ctx, "Subscription Tax", Decimal("11"), False)
        other = RequestContext.create(settings, ctx.stripe)
        await get_or_create_tax_rate(other, "Subscription Tax", Decimal("24"), False)

        assert mock_stripe_client.tax_rates.list_async.await_count == 2
