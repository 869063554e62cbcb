"""Tests for EventDefinitionExtractor."""

from flow_insight.config import IndicatorSets
from flow_insight.extractors import EventDefinitionExtractor

NESTED_PAYLOAD = """\
namespace Ordering.Contracts
{
    public class OrderPlaced : IntegrationEvent
    {
        public string OrderId { get; set; }
        public OrderPlacedData Data { get; set; }

        public class OrderPlacedData
        {
            public int Quantity { get; set; }
        }
    }
}
"""


class TestEventDefinitionExtractor:
    def test_single_line_declaration(self, make_unit):
        """Properties on the declaration line itself are collected."""
        unit = make_unit(
            "public class OrderPlaced : IntegrationEventBase { public string OrderId { get; set; } }"
        )
        events = EventDefinitionExtractor().extract(unit)

        assert len(events) == 1
        assert events[0].name == "OrderPlaced"
        assert events[0].properties == ("string OrderId",)

    def test_nested_payload_class(self, make_unit):
        events = EventDefinitionExtractor().extract(make_unit(NESTED_PAYLOAD))

        assert len(events) == 1
        assert events[0].payload_class_name == "OrderPlacedData"
        assert events[0].properties[:2] == ("string OrderId", "OrderPlacedData Data")

    def test_full_name_uses_namespace(self, make_unit):
        events = EventDefinitionExtractor().extract(make_unit(NESTED_PAYLOAD))
        assert events[0].full_name == "Ordering.Contracts.OrderPlaced"

    def test_full_name_without_namespace(self, make_unit):
        events = EventDefinitionExtractor().extract(
            make_unit("public class PaymentFailed : IntegrationEvent\n{\n}")
        )
        assert events[0].full_name == "PaymentFailed"

    def test_base_type_match_is_case_insensitive(self, make_unit):
        events = EventDefinitionExtractor().extract(
            make_unit("public class PaymentFailed : integrationevent\n{\n}")
        )
        assert [e.name for e in events] == ["PaymentFailed"]

    def test_window_stops_at_closing_brace(self, make_unit):
        text = """\
        public class First : IntegrationEvent
        {
            public string A { get; set; }
        }

        public class Unrelated
        {
            public string B { get; set; }
        }
        """
        events = EventDefinitionExtractor().extract(make_unit(text))
        assert events[0].properties == ("string A",)

    def test_one_line_empty_body_keeps_window_open(self, make_unit):
        """``{ }`` opens as well as closes, so the next class's properties are read."""
        text = """\
        public class Empty : IntegrationEvent { }
        public class Filled : IntegrationEvent
        {
            public int Count { get; set; }
        }
        """
        events = EventDefinitionExtractor().extract(make_unit(text))

        assert [e.name for e in events] == ["Empty", "Filled"]
        assert events[0].properties == ("int Count",)
        assert events[1].properties == ("int Count",)

    def test_generic_property_types(self, make_unit):
        text = """\
        public class BatchShipped : IntegrationEvent
        {
            public List<string> Items { get; set; }
        }
        """
        events = EventDefinitionExtractor().extract(make_unit(text))
        assert events[0].properties == ("List<string> Items",)

    def test_metadata_comes_from_unit(self, make_unit):
        unit = make_unit(NESTED_PAYLOAD, path="src/OrderPlaced.cs", repository="orders", project="Ordering")
        event = EventDefinitionExtractor().extract(unit)[0]

        assert event.origin_unit == "src/OrderPlaced.cs"
        assert event.repository == "orders"
        assert event.project == "Ordering"
        assert event.standard_properties == ("Id", "CreatedAt", "Version")

    def test_several_events_in_one_unit(self, make_unit):
        text = """\
        public class A : IntegrationEvent
        {
        }
        public class B : IntegrationEvent
        {
        }
        """
        assert [e.name for e in EventDefinitionExtractor().extract(make_unit(text))] == ["A", "B"]

    def test_non_event_classes_ignored(self, make_unit):
        assert EventDefinitionExtractor().extract(make_unit("public class OrderService : Service\n{\n}")) == []

    def test_empty_unit(self, make_unit):
        assert EventDefinitionExtractor().extract(make_unit("")) == []

    def test_custom_base_type(self, make_unit):
        extractor = EventDefinitionExtractor(IndicatorSets(event_base_type="DomainEvent"))
        events = extractor.extract(make_unit("public class Shipped : DomainEvent\n{\n}"))
        assert [e.name for e in events] == ["Shipped"]
