"""Tests for ConsumerExtractor."""

from flow_insight.extractors import ConsumerExtractor

HANDLER = """\
namespace Shipping.Handlers
{
    public class OrderHandler : IIntegrationEventHandler<OrderPlacedIntegrationEvent>
    {
        private readonly IShipments _shipments;

        public async Task Handle(OrderPlacedIntegrationEvent @event)
        {
            var order = await _orders.Find(@event.OrderId);

            await _shipments.Prepare(order);
        }
    }
}
"""

REGISTRATION = """\
public static class HandlerRegistration
{
    public static void Register(IServiceCollection services)
    {
        services.AddScoped<IIntegrationEventHandler<OrderPlacedIntegrationEvent>, OrderHandler>();
    }
}
"""


class TestConsumerExtractor:
    def test_handler_implementation(self, make_unit):
        consumers = ConsumerExtractor().extract(make_unit(HANDLER, path="Handlers/OrderHandler.cs"))

        assert len(consumers) == 1
        consumer = consumers[0]
        assert consumer.handler_class_name == "OrderHandler"
        assert consumer.event_name == "OrderPlacedIntegrationEvent"
        assert consumer.handler_method_name == "Handle"
        assert consumer.handler_body == ()

    def test_registration_occurrence_excluded(self, make_unit):
        unit = make_unit(REGISTRATION, path="Infrastructure/HandlerRegistration.cs")
        assert ConsumerExtractor().extract(unit) == []

    def test_entry_units_skipped(self, make_unit):
        for name in ("Startup.cs", "Program.cs", "MessagingConfiguration.cs"):
            assert ConsumerExtractor().extract(make_unit(HANDLER, path=f"src/{name}")) == []

    def test_class_declared_on_following_line(self, make_unit):
        text = """\
        // handles refunds
        IIntegrationEventHandler<RefundIssuedIntegrationEvent>
        internal class RefundHandler
        """
        consumers = ConsumerExtractor().extract(make_unit(text, path="RefundHandler.cs"))
        assert [c.handler_class_name for c in consumers] == ["RefundHandler"]

    def test_class_without_access_modifier(self, make_unit):
        text = """\
        class OrderHandler : IIntegrationEventHandler<OrderPlacedIntegrationEvent>
        {
            public Task Handle(OrderPlacedIntegrationEvent @event) => Task.CompletedTask;
        }
        """
        consumers = ConsumerExtractor().extract(make_unit(text, path="OrderHandler.cs"))

        assert [(c.handler_class_name, c.event_name) for c in consumers] == [
            ("OrderHandler", "OrderPlacedIntegrationEvent")
        ]

    def test_nearest_class_wins(self, make_unit):
        text = """\
        public class Far
        {
        }
        public class Near : IIntegrationEventHandler<A>
        {
        }
        """
        consumers = ConsumerExtractor().extract(make_unit(text, path="Handlers.cs"))
        assert [c.handler_class_name for c in consumers] == ["Near"]

    def test_multiple_interfaces_on_one_line(self, make_unit):
        text = (
            "public class MultiHandler : IIntegrationEventHandler<A>, "
            "IIntegrationEventHandler<B>\n{\n}"
        )
        consumers = ConsumerExtractor().extract(make_unit(text, path="MultiHandler.cs"))
        assert [c.event_name for c in consumers] == ["A", "B"]

    def test_handler_body_with_details(self, make_unit):
        consumer = ConsumerExtractor().extract(
            make_unit(HANDLER, path="OrderHandler.cs"), include_details=True
        )[0]
        assert consumer.handler_body == (
            "{",
            "var order = await _orders.Find(@event.OrderId);",
            "await _shipments.Prepare(order);",
        )

    def test_handler_body_is_capped(self, make_unit):
        body = "\n".join(f"Step{i}();" for i in range(30))
        text = (
            "public class BigHandler : IIntegrationEventHandler<A>\n{\n"
            "public Task Handle(A e)\n"
            f"{body}\n}}\n}}"
        )
        consumer = ConsumerExtractor().extract(make_unit(text, path="BigHandler.cs"), True)[0]
        assert len(consumer.handler_body) == 15
        assert consumer.handler_body[0] == "Step0();"

    def test_background_job_flag(self, make_unit):
        text = "// BackgroundJob\n" + HANDLER
        consumer = ConsumerExtractor().extract(make_unit(text, path="OrderHandler.cs"))[0]
        assert consumer.is_in_background_job

    def test_empty_unit(self, make_unit):
        assert ConsumerExtractor().extract(make_unit("", path="Empty.cs")) == []
