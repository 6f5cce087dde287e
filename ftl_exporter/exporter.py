"""Export FTL statistics as Prometheus metrics."""

import sys
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from prometheus_client import CollectorRegistry
from prometheus_client.core import GaugeMetricFamily, Metric

from .client import FTLClient
from .errors import FTLError
from .models import RankedList

NAMESPACE = 'ftl'

UpdateFunc = Callable[[FTLClient], List[Metric]]


@dataclass(frozen=True)
class CollectorSpec:
    """A named group of metrics fed by one or more FTL commands."""
    name: str
    update: UpdateFunc
    enabled_by_default: bool
    description: str


COLLECTORS: Dict[str, CollectorSpec] = {}


def register_collector(name: str, enabled_by_default: bool = True, description: str = ''):
    """Register ``update`` under ``name`` so it can be toggled from the command line."""
    def wrap(update: UpdateFunc) -> UpdateFunc:
        COLLECTORS[name] = CollectorSpec(name, update, enabled_by_default,
                                       description or (update.__doc__ or '').strip())
        return update
    return wrap


def default_collectors() -> List[str]:
    return [name for name, spec in COLLECTORS.items() if spec.enabled_by_default]


def _gauge(name: str, documentation: str, value: Optional[float] = None,
           labels: Sequence[str] = ()) -> GaugeMetricFamily:
    metric_name = f'{NAMESPACE}_{name}'
    if labels:
        return GaugeMetricFamily(metric_name, documentation, labels=list(labels))
    return GaugeMetricFamily(metric_name, documentation, value=value)


@register_collector('stats')
def collect_stats(client: FTLClient) -> List[Metric]:
    """Engine counters from >stats."""
    stats = client.get_stats()
    return [
        _gauge('domains_being_blocked', 'Domains being blocked.', stats.domains_being_blocked),
        _gauge('dns_queries_today', 'DNS Queries today.', stats.dns_queries_today),
        _gauge('ads_blocked_today', 'Ads blocked today.', stats.ads_blocked_today),
        _gauge('ads_percentage_today', 'Ads percentage today.', stats.ads_percentage_today),
        _gauge('unique_domains_today', 'Unique domains seen today.', stats.unique_domains),
        _gauge('queries_forwarded_today', 'Queries forwarded today.', stats.queries_forwarded),
        _gauge('queries_cached_today', 'Queries cached today.', stats.queries_cached),
        _gauge('clients_ever_seen', 'Clients ever seen.', stats.clients_ever_seen),
        _gauge('unique_clients', 'Unique clients.', stats.unique_clients),
        _gauge('status', 'Blocking status.', stats.status),
    ]


# >dbstats can take a while on a large database file
@register_collector('db_stats', enabled_by_default=False)
def collect_db_stats(client: FTLClient) -> List[Metric]:
    """Query database size from >dbstats."""
    db_stats = client.get_db_stats()
    return [
        _gauge('queries_in_database', 'Queries in database.', db_stats.rows),
        _gauge('database_file_size', 'Database file size.', db_stats.file_size),
    ]


def _ranked(client_call: Callable[[], RankedList], total_name: str, total_help: str,
            top_name: str, top_help: str, label: str) -> List[Metric]:
    ranked = client_call()
    total = _gauge(total_name, total_help, ranked.total)
    top = _gauge(top_name, top_help, labels=[label])
    for entry in ranked.entries:
        top.add_metric([entry.label], entry.count)
    return [total, top]


@register_collector('domains')
def collect_domains(client: FTLClient) -> List[Metric]:
    """Top permitted domains from >top-domains."""
    return _ranked(client.get_top_domains,
                   'total_domains_today', 'Total domains today.',
                   'top_domains_today', 'Top domains today.', 'domain')


@register_collector('ad_domains')
def collect_ad_domains(client: FTLClient) -> List[Metric]:
    """Top blocked domains from >top-ads."""
    return _ranked(client.get_top_ads,
                   'total_ad_domains_today', 'Overall ads.',
                   'top_ad_domains_today', 'Top Ads today.', 'domain')


@register_collector('clients')
def collect_clients(client: FTLClient) -> List[Metric]:
    """Top clients from >top-clients and >top-clients blocked."""
    top_clients = _gauge('top_clients_today', 'Top sources today.', labels=['client'])
    for entry in client.get_top_clients().entries:
        top_clients.add_metric([entry.label], entry.count)

    top_blocked = _gauge('top_blocked_clients_today', 'Top blocked sources today.', labels=['client'])
    for entry in client.get_top_blocked_clients().entries:
        top_blocked.add_metric([entry.label], entry.count)

    return [top_clients, top_blocked]


@register_collector('forward_destinations')
def collect_forward_destinations(client: FTLClient) -> List[Metric]:
    """Upstream shares from >forward-dest."""
    destinations = _gauge('forward_destinations_today', 'Forward destinations today.', labels=['address'])
    for destination in client.get_forward_destinations():
        destinations.add_metric([destination.address], destination.percentage)
    return [destinations]


@register_collector('query_types')
def collect_query_types(client: FTLClient) -> List[Metric]:
    """Query type shares from >querytypes."""
    query_types = _gauge('query_types_today', 'DNS Query types today (percentage).', labels=['query'])
    for name, percentage in client.get_query_types().items():
        query_types.add_metric([name], percentage)
    return [query_types]


@register_collector('queries_over_time')
def collect_queries_over_time(client: FTLClient) -> List[Metric]:
    """Allowed and blocked queries of the latest bucket from >overTime."""
    series = client.get_queries_over_time()
    metrics: List[Metric] = []

    forwarded = series.latest_forwarded()
    if forwarded is not None:
        metrics.append(_gauge('queries_allowed', 'Amount of allowed queries for the last 10 minutes.', forwarded.count))

    blocked = series.latest_blocked()
    if blocked is not None:
        metrics.append(_gauge('queries_blocked', 'Amount blocked queries for the last 10 minutes.', blocked.count))

    return metrics


# >ClientsoverTime is not part of the documented API
@register_collector('clients_over_time', enabled_by_default=False)
def collect_clients_over_time(client: FTLClient) -> List[Metric]:
    """Per-client queries of the latest bucket from >ClientsoverTime and >client-names."""
    buckets = client.get_clients_over_time()
    names = client.get_client_names()

    clients = _gauge('clients', 'Client requests for the last 10 minutes.', labels=['address'])
    if buckets:
        latest = max(buckets, key=lambda bucket: bucket.timestamp)
        for i, count in enumerate(latest.counts):
            address = names[i].address if i < len(names) else f'address_{i}'
            clients.add_metric([address], count)
    return [clients]


class FTLCollector:
    """Prometheus collector running the enabled FTL collectors on every scrape.

    Collectors run concurrently, each command on its own connection. A failing
    collector only affects its own metrics and its success gauge.
    """

    def __init__(self, client: FTLClient, collectors: Optional[Iterable[str]] = None,
                 max_workers: Optional[int] = None):
        self.client = client
        names = list(collectors) if collectors is not None else default_collectors()
        unknown = [name for name in names if name not in COLLECTORS]
        if unknown:
            raise ValueError(f"Unknown collector(s): {', '.join(unknown)}")
        self.collectors = [COLLECTORS[name] for name in names]
        self.max_workers = max_workers or max(len(self.collectors), 1)

    def _execute(self, spec: CollectorSpec) -> Tuple[CollectorSpec, List[Metric], float, bool]:
        begin = time.perf_counter()
        try:
            metrics = spec.update(self.client)
            success = True
        except FTLError as e:
            print(f"Error: collector {spec.name} failed: {e}", file=sys.stderr)
            metrics = []
            success = False
        return spec, metrics, time.perf_counter() - begin, success

    def describe(self) -> List[Metric]:
        # Metric names depend on the enabled collectors; skip registration checks
        return []

    def collect(self) -> Iterable[Metric]:
        duration = GaugeMetricFamily(
            f'{NAMESPACE}_scrape_collector_duration_seconds',
            'ftl_exporter: Duration of a collector scrape.',
            labels=['collector'],
        )
        success = GaugeMetricFamily(
            f'{NAMESPACE}_scrape_collector_success',
            'ftl_exporter: Whether a collector succeeded.',
            labels=['collector'],
        )

        if self.collectors:
            with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
                results = list(pool.map(self._execute, self.collectors))
        else:
            results = []

        for spec, metrics, elapsed, ok in results:
            yield from metrics
            duration.add_metric([spec.name], elapsed)
            success.add_metric([spec.name], 1.0 if ok else 0.0)

        yield duration
        yield success


def build_registry(client: FTLClient, collectors: Optional[Iterable[str]] = None) -> CollectorRegistry:
    """Create a registry holding only the FTL collector."""
    registry = CollectorRegistry()
    registry.register(FTLCollector(client, collectors))
    return registry
