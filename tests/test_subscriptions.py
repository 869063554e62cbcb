"""Tests for SubscriptionExtractor."""

import pytest

from flow_insight.extractors import ConsumerExtractor, SubscriptionExtractor
from flow_insight.models import SubscriptionKind


class TestSubscriptionExtractor:
    @pytest.mark.parametrize("lifetime", ["AddTransient", "AddScoped", "AddSingleton"])
    def test_registration_lifetimes(self, make_unit, lifetime):
        text = f"services.{lifetime}<IIntegrationEventHandler<OrderPlacedIntegrationEvent>, OrderHandler>();"
        records = SubscriptionExtractor().extract(make_unit(text))

        assert len(records) == 1
        assert records[0].event_name == "OrderPlacedIntegrationEvent"
        assert records[0].kind is SubscriptionKind.DEPENDENCY_REGISTRATION

    @pytest.mark.parametrize("method", ["Subscribe", "SubscribeAsync"])
    def test_event_bus_subscriptions(self, make_unit, method):
        text = f"eventBus.{method}<OrderPlacedIntegrationEvent, OrderHandler>();"
        records = SubscriptionExtractor().extract(make_unit(text))

        assert [r.event_name for r in records] == ["OrderPlacedIntegrationEvent"]
        assert records[0].kind is SubscriptionKind.EVENT_BUS_SUBSCRIPTION

    def test_single_type_argument_subscription(self, make_unit):
        records = SubscriptionExtractor().extract(make_unit("bus.Subscribe<OrderPlaced>(OnOrder);"))
        assert [r.event_name for r in records] == ["OrderPlaced"]

    def test_registration_counts_as_subscription_not_consumer(self, make_unit):
        text = """\
        public void ConfigureServices(IServiceCollection services)
        {
            services.AddScoped<IIntegrationEventHandler<OrderPlacedIntegrationEvent>, OrderHandler>();
        }
        """
        unit = make_unit(text, path="Infrastructure/Registrations.cs")

        assert ConsumerExtractor().extract(unit) == []
        records = SubscriptionExtractor().extract(unit)
        assert [(r.event_name, r.kind) for r in records] == [
            ("OrderPlacedIntegrationEvent", SubscriptionKind.DEPENDENCY_REGISTRATION)
        ]

    def test_position_and_context(self, make_unit):
        text = "// wiring\n\neventBus.Subscribe<A, AHandler>();\n"
        record = SubscriptionExtractor().extract(make_unit(text))[0]

        assert record.position == 3
        assert record.context == "eventBus.Subscribe<A, AHandler>();"

    def test_context_window_with_details(self, make_unit):
        text = "one\ntwo\neventBus.Subscribe<A, AHandler>();\nfour\nfive\nsix"
        record = SubscriptionExtractor().extract(make_unit(text), include_details=True)[0]
        assert record.context.split("\n") == [
            "    one",
            "    two",
            ">>> eventBus.Subscribe<A, AHandler>();",
            "    four",
            "    five",
        ]

    def test_background_job_flag(self, make_unit):
        text = "RecurringJob.AddOrUpdate(() => Sync());\neventBus.Subscribe<A, AHandler>();"
        assert SubscriptionExtractor().extract(make_unit(text))[0].is_in_background_job

    def test_empty_unit(self, make_unit):
        assert SubscriptionExtractor().extract(make_unit("")) == []
