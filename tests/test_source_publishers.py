"""Tests for SourcePublisherExtractor."""

from flow_insight.extractors import SourcePublisherExtractor, unresolved_event_name

RESOLVED = """\
public class OrderService
{
    public async Task PlaceOrder(string id)
    {
        var evt = new OrderPlacedIntegrationEvent(id);
        await _messagePublisher.PublishAsync(evt);
    }
}
"""


class TestSourcePublisherExtractor:
    def test_resolves_identifier_from_construction(self, make_unit):
        sites = SourcePublisherExtractor().extract(make_unit(RESOLVED))

        assert len(sites) == 1
        site = sites[0]
        assert site.event_name == "OrderPlacedIntegrationEvent"
        assert site.class_name == "OrderService"
        assert site.method_name == "PlaceOrder"
        assert site.position == 6

    def test_unresolved_identifier_placeholder(self, make_unit):
        text = """\
        public class OrderService
        {
            public void Forward(IntegrationEvent evt)
            {
                _messagePublisher.Publish(evt);
            }
        }
        """
        sites = SourcePublisherExtractor().extract(make_unit(text))
        assert [s.event_name for s in sites] == ["Unknown(evt)"]
        assert unresolved_event_name("evt") == "Unknown(evt)"

    def test_lookback_is_bounded(self, make_unit):
        padding = "\n".join("    Log();" for _ in range(20))
        text = f"var evt = new OrderPlacedIntegrationEvent(id);\n{padding}\n_messagePublisher.Publish(evt);"
        sites = SourcePublisherExtractor().extract(make_unit(text))
        assert sites[0].event_name == "Unknown(evt)"

    def test_assignment_on_separate_line(self, make_unit):
        text = """\
        OrderShippedIntegrationEvent evt;
        evt = new OrderShippedIntegrationEvent(id);
        _messagePublisher.Send(evt);
        """
        sites = SourcePublisherExtractor().extract(make_unit(text))
        assert sites[0].event_name == "OrderShippedIntegrationEvent"

    def test_inline_construction(self, make_unit):
        text = "_bus.PublishAsync(new PaymentFailedIntegrationEvent(orderId));"
        sites = SourcePublisherExtractor().extract(make_unit(text))
        assert [s.event_name for s in sites] == ["PaymentFailedIntegrationEvent"]

    def test_inline_requires_event_suffix(self, make_unit):
        text = "_bus.Publish(new PaymentFailed(orderId));"
        assert SourcePublisherExtractor().extract(make_unit(text)) == []

    def test_field_pattern_is_case_insensitive(self, make_unit):
        text = "var evt = new AIntegrationEvent();\n_MessagePublisher.publish(evt);"
        sites = SourcePublisherExtractor().extract(make_unit(text))
        assert [s.event_name for s in sites] == ["AIntegrationEvent"]

    def test_unknown_field_not_matched(self, make_unit):
        text = "var evt = new AIntegrationEvent();\n_otherThing.Publish(evt);"
        assert SourcePublisherExtractor().extract(make_unit(text)) == []

    def test_context_is_line_without_details(self, make_unit):
        site = SourcePublisherExtractor().extract(make_unit(RESOLVED))[0]
        assert site.context == "await _messagePublisher.PublishAsync(evt);"

    def test_context_window_with_details(self, make_unit):
        site = SourcePublisherExtractor().extract(make_unit(RESOLVED), include_details=True)[0]
        context_lines = site.context.split("\n")
        assert len(context_lines) == 7
        assert context_lines[3] == ">>> await _messagePublisher.PublishAsync(evt);"

    def test_background_job_class(self, make_unit):
        text = """\
        [AutomaticRetry]
        public class ReminderJob
        {
            public void Run()
            {
                _messagePublisher.Publish(new ReminderDueIntegrationEvent(1));
            }
        }
        """
        site = SourcePublisherExtractor().extract(make_unit(text))[0]
        assert site.is_in_background_job
        assert site.background_job_class_name == "ReminderJob"

    def test_not_background_job(self, make_unit):
        site = SourcePublisherExtractor().extract(make_unit(RESOLVED))[0]
        assert not site.is_in_background_job
        assert site.background_job_class_name is None

    def test_empty_unit(self, make_unit):
        assert SourcePublisherExtractor().extract(make_unit("")) == []
