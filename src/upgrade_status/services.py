"""Construction of the scan services from configuration."""

import logging
import time
from dataclasses import dataclass
from typing import Callable

from upgrade_status.aggregator import ReportAggregator
from upgrade_status.analyzer import AnalysisRunner
from upgrade_status.cache import Cache
from upgrade_status.config import Config
from upgrade_status.discovery import ManifestComponentSource, ProjectCollector, ReleaseFeedClient
from upgrade_status.errors import ConfigurationError
from upgrade_status.jobs import InProcessDispatcher, JobDispatcher, LoopbackDispatcher, ScanScheduler
from upgrade_status.scanner import BatchAnalyzer, MessageCategorizer, SubprocessBatchAnalyzer, UpstreamPlanClient
from upgrade_status.store import ResultStore
from upgrade_status.work_queue import ScanQueue, StateStore

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Every collaborator of a scan run, wired together."""

    config: Config
    result_store: ResultStore
    collector: ProjectCollector
    runner: AnalysisRunner
    scheduler: ScanScheduler
    aggregator: ReportAggregator


def build_services(
    config: Config,
    batch_analyzer: BatchAnalyzer | None = None,
    clock: Callable[[], float] = time.time,
) -> Services:
    """Build the services described by a configuration.

    Args:
        config: Application configuration
        batch_analyzer: Analyzer invoker (the configured subprocess by default)
        clock: Returns the current unix time

    Returns:
        Wired services

    Raises:
        ConfigurationError: If the configuration is invalid
    """
    result_store = ResultStore(config.results_dir)
    cache = Cache(config.cache_dir, enabled=config.cache_enabled)

    collector = ProjectCollector(
        source=ManifestComponentSource(
            config.collector_roots,
            enabled=config.enabled_components,
            platform_paths=config.platform_paths,
        ),
        result_store=result_store,
        release_source=ReleaseFeedClient(
            cache,
            url_template=config.releases_url,
            ttl_hours=config.releases_ttl_hours,
        ),
        platform_name=config.platform_name,
        target_version=config.target_version,
        include_disabled=config.include_disabled,
        check_disabled_updates=config.check_disabled_updates,
        contrib_by_directory=config.contrib_by_directory,
    )

    plan_source = None
    if config.plans_url:
        plan_source = UpstreamPlanClient(
            config.plans_url,
            field=config.plans_field,
            cache=cache,
            ttl_hours=config.plans_ttl_hours,
        )

    runner = AnalysisRunner(
        batch_analyzer=batch_analyzer or SubprocessBatchAnalyzer(config.analyzer_command, timeout=config.scan_timeout),
        result_store=result_store,
        categorizer=MessageCategorizer(
            config.platform_name,
            config.platform_version,
            config.oldest_supported,
            inclusive_boundary=config.inclusive_boundary,
        ),
        clock=clock,
        plan_source=plan_source,
        batch_size=config.batch_size,
        extensions=config.extensions,
        exclude_patterns=config.exclude_patterns,
        analyzer_config=config.analyzer_config,
        platform_name=config.platform_name,
        target_version=config.target_version,
        platform_package=config.platform_package,
    )

    dispatcher: JobDispatcher
    if config.dispatch_strategy == "loopback":
        if not config.loopback_url:
            raise ConfigurationError("dispatch.loopback_url is required for loopback dispatch")
        dispatcher = LoopbackDispatcher(config.loopback_url)
    else:
        dispatcher = InProcessDispatcher(collector, runner)

    scheduler = ScanScheduler(
        queue=ScanQueue(config.queue_db, clock=clock),
        state=StateStore(config.queue_db),
        dispatcher=dispatcher,
        result_store=result_store,
        clock=clock,
    )

    logger.debug(f"Services built with storage at {config.storage_dir}")
    return Services(
        config=config,
        result_store=result_store,
        collector=collector,
        runner=runner,
        scheduler=scheduler,
        aggregator=ReportAggregator(result_store),
    )
