"""Shared test fixtures for Flow Insight tests."""

from pathlib import Path
from textwrap import dedent

import pytest

from flow_insight.scanning import SourceUnit


def pytest_addoption(parser):
    """Add --run-slow option for slow tests."""
    parser.addoption(
        "--run-slow",
        action="store_true",
        default=False,
        help="run slow tests",
    )


def pytest_configure(config):
    """Configure slow marker."""
    config.addinivalue_line("markers", "slow: mark test as slow to run")


def pytest_collection_modifyitems(config, items):
    """Skip slow tests unless --run-slow is given."""
    if config.getoption("--run-slow"):
        return
    skip_slow = pytest.mark.skip(reason="need --run-slow option to run")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)


@pytest.fixture
def make_unit():
    """Build a SourceUnit from (dedented) text."""

    def _make(text: str, path: str = "Orders/OrderService.cs", repository: str = "orders-repo",
              project: str = "Ordering.Api") -> SourceUnit:
        return SourceUnit(path=path, text=dedent(text), repository=repository, project=project)

    return _make


def write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(dedent(text), encoding="utf-8")
    return path


ORDER_EVENT = """\
namespace Ordering.Contracts
{
    public class OrderPlacedIntegrationEvent : IntegrationEvent
    {
        public string OrderId { get; set; }
        public decimal Total { get; set; }
    }
}
"""

ORDER_SERVICE = """\
namespace Ordering.Api
{
    public class OrderService
    {
        private readonly IMessagePublisher _messagePublisher;

        public async Task PlaceOrder(string id)
        {
            var evt = new OrderPlacedIntegrationEvent(id);
            await _messagePublisher.PublishAsync(evt);
        }
    }
}
"""

SHIPPING_HANDLER = """\
namespace Shipping.Handlers
{
    public class OrderPlacedHandler : IIntegrationEventHandler<OrderPlacedIntegrationEvent>
    {
        public async Task Handle(OrderPlacedIntegrationEvent @event)
        {
            await _shipments.Prepare(@event.OrderId);
        }
    }
}
"""

SHIPPING_STARTUP = """\
public class Startup
{
    public void ConfigureServices(IServiceCollection services)
    {
        services.AddScoped<IIntegrationEventHandler<OrderPlacedIntegrationEvent>, OrderPlacedHandler>();
    }

    public void Configure(IEventBus eventBus)
    {
        eventBus.Subscribe<OrderPlacedIntegrationEvent, OrderPlacedHandler>();
    }
}
"""

JOB_SERVICE = """\
namespace Shipping.Jobs
{
    [AutomaticRetry]
    public class ReminderJob
    {
        public void Run()
        {
            _messagePublisher.Publish(new ReminderDueIntegrationEvent(42));
        }
    }
}
"""


@pytest.fixture
def repos_root(tmp_path: Path) -> Path:
    """Two repositories: one publishing an event, one consuming it."""
    orders = tmp_path / "orders"
    write(orders / "Ordering.sln", "")
    write(orders / "src" / "Ordering.Api" / "Ordering.Api.csproj", "<Project />")
    write(orders / "src" / "Ordering.Api" / "OrderPlacedIntegrationEvent.cs", ORDER_EVENT)
    write(orders / "src" / "Ordering.Api" / "OrderService.cs", ORDER_SERVICE)
    write(orders / "src" / "Ordering.Api" / "obj" / "Generated.cs", ORDER_SERVICE)
    write(orders / "tests" / "Ordering.Tests" / "Ordering.Tests.csproj", "<Project />")
    write(orders / "tests" / "Ordering.Tests" / "OrderServiceTests.cs", ORDER_SERVICE)

    shipping = tmp_path / "shipping"
    write(shipping / "Shipping.Worker" / "Shipping.Worker.csproj", "<Project />")
    write(shipping / "Shipping.Worker" / "OrderPlacedHandler.cs", SHIPPING_HANDLER)
    write(shipping / "Shipping.Worker" / "Startup.cs", SHIPPING_STARTUP)
    write(shipping / "Shipping.Worker" / "ReminderJob.cs", JOB_SERVICE)

    # Not a repository: no solution or project file
    write(tmp_path / "docs" / "README.cs", ORDER_SERVICE)
    return tmp_path


@pytest.fixture
def write_file():
    """Write dedented text to a path, creating parent directories."""
    return write
