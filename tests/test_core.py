"""End-to-end tests for FlowAnalyzer over on-disk repositories."""

import logging

import pytest

from conftest import ORDER_SERVICE
from flow_insight import analyze
from flow_insight.config import AnalysisConfig
from flow_insight.core import FlowAnalyzer
from flow_insight.exceptions import InvalidPathError
from flow_insight.models import SubscriptionKind

LISTING = """\
.assembly Ordering.Api
{
}
.class public auto ansi OrderService extends [mscorlib]System.Object
{
  .method public hidebysig instance void PlaceOrder() cil managed
  {
    .locals init (class OrderPlacedIntegrationEvent V_0)
    IL_0000:  newobj     instance void OrderPlacedIntegrationEvent::.ctor()
    IL_0005:  stloc.0
    IL_0006:  ldarg.0
    IL_0007:  ldfld      class [Messaging]Messaging.IMessagePublisher OrderService::_messagePublisher
    IL_000c:  ldloc.0
    IL_000d:  callvirt   instance void [Messaging]Messaging.IMessagePublisher::Publish(class [Messaging]Messaging.IntegrationEvent)
    IL_0012:  ret
  }
}
"""


def facts(report):
    data = report.to_dict()
    del data["generated_at"]
    return data


class TestAnalyze:
    def test_counts(self, repos_root):
        report = FlowAnalyzer(repos_root).analyze()

        assert report.repository_count == 2
        assert report.project_count == 3
        assert [e.name for e in report.events] == ["OrderPlacedIntegrationEvent"]
        assert len(report.publishers) == 3
        assert len(report.consumers) == 1
        assert len(report.subscriptions) == 2

    def test_facts_in_unit_order(self, repos_root):
        report = FlowAnalyzer(repos_root).analyze()

        assert [(p.repository, p.project, p.class_name) for p in report.publishers] == [
            ("orders", "Ordering.Api", "OrderService"),
            ("orders", "Ordering.Tests", "OrderService"),
            ("shipping", "Shipping.Worker", "ReminderJob"),
        ]
        assert [s.kind for s in report.subscriptions] == [
            SubscriptionKind.DEPENDENCY_REGISTRATION,
            SubscriptionKind.EVENT_BUS_SUBSCRIPTION,
        ]

    def test_publisher_events_resolved(self, repos_root):
        report = FlowAnalyzer(repos_root).analyze()
        assert [p.event_name for p in report.publishers] == [
            "OrderPlacedIntegrationEvent",
            "OrderPlacedIntegrationEvent",
            "ReminderDueIntegrationEvent",
        ]
        assert report.publishers[2].is_in_background_job

    def test_exclude_tests(self, repos_root):
        report = FlowAnalyzer(repos_root, AnalysisConfig(exclude_tests=True)).analyze()

        assert report.project_count == 2
        assert [p.project for p in report.publishers] == ["Ordering.Api", "Shipping.Worker"]

    def test_parallel_matches_sequential(self, repos_root):
        sequential = FlowAnalyzer(repos_root).analyze()
        parallel = FlowAnalyzer(repos_root, AnalysisConfig(workers=4)).analyze()
        assert facts(parallel) == facts(sequential)

    def test_background_jobs_only(self, repos_root):
        report = FlowAnalyzer(repos_root, AnalysisConfig(background_jobs_only=True)).analyze()

        assert [p.class_name for p in report.publishers] == ["ReminderJob"]
        assert report.consumers == []
        assert len(report.subscriptions) == 2
        assert len(report.events) == 1

    def test_include_details(self, repos_root):
        report = FlowAnalyzer(repos_root, AnalysisConfig(include_details=True)).analyze()

        assert ">>> " in report.publishers[0].context
        assert report.consumers[0].handler_body

    def test_public_analyze(self, repos_root):
        report = analyze(str(repos_root), exclude_tests=True)
        assert len(report.publishers) == 2

    def test_invalid_root(self, tmp_path):
        with pytest.raises(InvalidPathError):
            FlowAnalyzer(tmp_path / "missing")

    def test_root_without_repositories(self, tmp_path):
        report = FlowAnalyzer(tmp_path).analyze()
        assert report.repository_count == 0
        assert report.events == []


class TestBytecodeMode:
    def test_module_publishers_replace_source_publishers(self, repos_root, write_file):
        write_file(repos_root / "orders" / "src" / "Ordering.Api" / "bin" / "Debug" / "Ordering.Api.il", LISTING)
        report = FlowAnalyzer(repos_root, AnalysisConfig(use_bytecode=True)).analyze()

        assert [(p.repository, p.event_name, p.class_name) for p in report.publishers] == [
            ("orders", "OrderPlacedIntegrationEvent", "OrderService"),
            ("shipping", "ReminderDueIntegrationEvent", "ReminderJob"),
        ]
        assert report.publishers[0].project == "Ordering.Api"
        assert report.publishers[0].origin_unit.endswith("Ordering.Api.il")
        assert len(report.consumers) == 1

    def test_falls_back_to_source_without_listings(self, repos_root):
        report = FlowAnalyzer(repos_root, AnalysisConfig(use_bytecode=True)).analyze()
        assert len(report.publishers) == 3

    def test_listings_ignored_in_source_mode(self, repos_root, write_file):
        write_file(repos_root / "orders" / "bin" / "Ordering.Api.il", LISTING)
        report = FlowAnalyzer(repos_root).analyze()
        assert len(report.publishers) == 3


class TestUnitIsolation:
    def test_broken_listing_is_skipped(self, repos_root, write_file, caplog):
        caplog.set_level(logging.WARNING, logger="flow_insight")
        write_file(repos_root / "orders" / "bin" / "Broken.il", ".assembly Broken\n}\n}\n")
        report = FlowAnalyzer(repos_root, AnalysisConfig(use_bytecode=True)).analyze()

        assert len(report.events) == 1
        assert len(report.consumers) == 1
        assert "Module read error" in caplog.text

    def test_oversize_unit_is_skipped(self, repos_root, write_file, caplog):
        caplog.set_level(logging.WARNING, logger="flow_insight")
        big = "public class HugeIntegrationEvent : IntegrationEvent\n{\n" + "// padding\n" * 500 + "}\n"
        write_file(repos_root / "shipping" / "Shipping.Worker" / "Huge.cs", big)
        report = FlowAnalyzer(repos_root, AnalysisConfig(max_file_size_mb=0.001)).analyze()

        assert [e.name for e in report.events] == ["OrderPlacedIntegrationEvent"]
        assert len(report.consumers) == 1
        assert "Access error" in caplog.text

    def test_unexpected_error_is_isolated(self, repos_root, caplog, monkeypatch):
        caplog.set_level(logging.WARNING, logger="flow_insight")
        analyzer = FlowAnalyzer(repos_root)
        original = analyzer.consumers.extract

        def flaky(unit, include_details=False):
            if unit.path.endswith("Startup.cs"):
                raise RuntimeError("boom")
            return original(unit, include_details)

        monkeypatch.setattr(analyzer.consumers, "extract", flaky)
        report = analyzer.analyze()

        assert report.subscriptions == []
        assert len(report.consumers) == 1
        assert "Unexpected error analyzing" in caplog.text


class TestScanSourceUnit:
    def test_publishers_optional(self, make_unit, tmp_path):
        analyzer = FlowAnalyzer(tmp_path)
        unit = make_unit(ORDER_SERVICE)

        assert len(analyzer.scan_source_unit(unit).publishers) == 1
        assert analyzer.scan_source_unit(unit, with_publishers=False).publishers == []
