"""Starlette ASGI application serving the dashboard API."""

from __future__ import annotations

import asyncio
import contextlib
import json
from typing import Any, AsyncIterator, Callable

from starlette.applications import Starlette
from starlette.concurrency import run_in_threadpool
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from ..aggregation import summarize_flows
from ..detection import quality_grade, summarize_by_severity
from ..exceptions import CollectorError, InvalidConfigError, PersistenceError
from ..logging_config import get_logger
from ..models import FlowRecord, UnitRecord, now_ms
from ..persistence.database import AnalyzerDB
from ..persistence.reader import (
    alert_history,
    latest_flow_record,
    latest_flow_records,
    latest_sample,
    latest_unit_records,
    quality_history,
    recent_samples,
    sample_stats,
)
from ..persistence.settings import (
    describe_settings,
    get_setting,
    reset_settings,
    update_setting,
    update_settings,
)
from ..scan import Readiness, ScanStatus, scan_unit
from ..service import AnalyzerService
from ..telemetry import TelemetryAnalyzer, describe_alert

logger = get_logger(__name__)

_HOUR_MS = 60 * 60 * 1000

# Window of the averages on the performance summary, in minutes
SUMMARY_WINDOW_MINUTES = 10

Handler = Callable[[Request], Any]


def _int_param(request: Request, name: str, default: int) -> int:
    try:
        value = int(request.query_params.get(name, default))
    except ValueError:
        return default
    return value if value > 0 else default


def _flow_row(flow: FlowRecord) -> dict[str, Any]:
    return {
        "flow_id": flow.flow_id,
        "flow_name": flow.flow_name,
        "quality_score": round(flow.quality_score, 2),
        "qualityGrade": quality_grade(flow.quality_score),
        "total_issues": flow.total_issues,
        "nodes_with_issues": flow.nodes_with_issues,
        "nodes_with_critical_issues": flow.nodes_with_critical_issues,
        "total_function_nodes": flow.total_units,
        "created_at": flow.created_at,
    }


def _unit_detail(unit: UnitRecord) -> dict[str, Any]:
    return {
        "nodeId": unit.unit_id,
        "nodeName": unit.unit_name,
        "issuesCount": unit.issues_count,
        "qualityScore": round(unit.quality_score, 2),
        "complexityScore": round(unit.complexity_score, 2),
        "linesOfCode": unit.lines_of_code,
        "issues": [issue.to_dict() for issue in unit.issues],
    }


def create_app(service: AnalyzerService, start_services: bool = True) -> Starlette:
    """Build the Starlette application wired to *service*.

    Args:
        service: The analyzer service backing every endpoint
        start_services: Start the monitor and scan timer in the lifespan
            once the host is ready
    """
    db_path = service.db_path

    def _db_errors(handler: Handler) -> Handler:
        """Turn persistence failures into a JSON 500 response."""

        async def wrapped(request: Request) -> JSONResponse:
            try:
                return await handler(request)
            except PersistenceError as e:
                logger.error("%s failed: %s", handler.__name__, e)
                return JSONResponse(
                    {"error": "Database not available", "details": e.to_dict()}, status_code=500
                )

        wrapped.__name__ = handler.__name__
        return wrapped

    async def _json_body(request: Request) -> Any:
        try:
            return await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            return None

    # ── quality ─────────────────────────────────────────────────────────

    @_db_errors
    async def api_quality_summary(request: Request) -> JSONResponse:
        with AnalyzerDB(db_path) as db:
            flows = latest_flow_records(db.conn)
        return JSONResponse(
            {
                "summary": summarize_flows(flows).to_dict(),
                "flows": [_flow_row(f) for f in flows],
            }
        )

    @_db_errors
    async def api_quality_history(request: Request) -> JSONResponse:
        hours = _int_param(request, "hours", 24)
        with AnalyzerDB(db_path) as db:
            buckets = quality_history(db.conn, now_ms() - hours * _HOUR_MS)
        return JSONResponse({"timeRange": f"{hours} hours", "history": buckets})

    @_db_errors
    async def api_flow_quality(request: Request) -> JSONResponse:
        flow_id = request.path_params["flow_id"]
        with AnalyzerDB(db_path) as db:
            flow = latest_flow_record(db.conn, flow_id)
        if flow is None:
            return JSONResponse(
                {"error": "Flow not found or no quality data available"}, status_code=404
            )
        return JSONResponse(
            {
                "flowId": flow.flow_id,
                "flowName": flow.flow_name,
                "qualityScore": round(flow.quality_score, 2),
                "qualityGrade": quality_grade(flow.quality_score),
                "complexityScore": round(flow.complexity_score, 2),
                "totalIssues": flow.total_issues,
                "nodesWithIssues": flow.nodes_with_issues,
                "criticalIssues": flow.nodes_with_critical_issues,
                "totalNodes": flow.total_units,
                "issueTypes": flow.issue_types,
                "lastUpdated": flow.created_at,
            }
        )

    @_db_errors
    async def api_flow_issues(request: Request) -> JSONResponse:
        flow_id = request.path_params["flow_id"]
        with AnalyzerDB(db_path) as db:
            flow = latest_flow_record(db.conn, flow_id)
            units = latest_unit_records(db.conn, flow_id) if flow is not None else []
        if flow is None:
            return JSONResponse(
                {"error": "Flow not found or no quality data available"}, status_code=404
            )
        units.sort(key=lambda u: (-u.issues_count, u.quality_score))
        return JSONResponse(
            {
                "flowId": flow.flow_id,
                "flowName": flow.flow_name,
                "qualityScore": round(flow.quality_score, 2),
                "totalIssues": flow.total_issues,
                "nodesWithIssues": flow.nodes_with_issues,
                "criticalIssues": flow.nodes_with_critical_issues,
                "totalNodes": flow.total_units,
                "issueTypesSummary": flow.issue_types,
                "lastUpdated": flow.created_at,
                "nodeDetails": [_unit_detail(u) for u in units],
            }
        )

    async def api_node_quality(request: Request) -> JSONResponse:
        """Score one function node live at the widest detection level."""
        flow_id = request.path_params["flow_id"]
        node_id = request.path_params["node_id"]
        try:
            snapshot = await run_in_threadpool(service.collector.collect)
        except CollectorError as e:
            logger.warning("Node quality lookup failed: %s", e)
            return JSONResponse({"error": "Flow sources not available"}, status_code=503)

        unit = next(
            (u for u in snapshot.units if u.unit_id == node_id and u.flow_id == flow_id), None
        )
        if unit is None:
            return JSONResponse({"error": "Function node not found"}, status_code=404)

        record = scan_unit(unit, detection_level=3)
        by_severity = summarize_by_severity(record.issues)
        return JSONResponse(
            {
                "nodeId": record.unit_id,
                "nodeName": record.unit_name,
                "flowId": record.flow_id,
                "qualityScore": record.quality_score,
                "qualityGrade": quality_grade(record.quality_score),
                "complexityScore": record.complexity_score,
                "linesOfCode": record.lines_of_code,
                "totalIssues": record.issues_count,
                "issues": [issue.to_dict() for issue in record.issues],
                "issuesBySeverity": {sev.value: count for sev, count in by_severity.items()},
            }
        )

    # ── performance ─────────────────────────────────────────────────────

    @_db_errors
    async def api_performance_summary(request: Request) -> JSONResponse:
        cfg = service.config
        with AnalyzerDB(db_path) as db:
            current = latest_sample(db.conn)
            window = TelemetryAnalyzer(db.conn).averages(SUMMARY_WINDOW_MINUTES)
            alerts = alert_history(db.conn, limit=5)
            stats = sample_stats(db.conn)

        current_metrics = {
            "cpu": current.cpu_percent if current else 0,
            "memory": current.memory_percent if current else 0,
            "eventLoopLag": current.event_loop_lag_ms if current else 0,
            "timestamp": current.timestamp if current else now_ms(),
        }
        return JSONResponse(
            {
                "summary": {
                    **{k: v for k, v in current_metrics.items() if k != "timestamp"},
                    "monitoring": service.monitor.running,
                    "interval": cfg.performance_interval,
                    "cpuThreshold": cfg.cpu_threshold,
                    "memoryThreshold": cfg.memory_threshold,
                    "eventLoopThreshold": cfg.event_loop_threshold,
                    "retentionDays": cfg.db_retention_days,
                },
                "current": current_metrics,
                "averages": window.to_dict(),
                "recentAlerts": [describe_alert(a) for a in alerts],
                "statistics": stats,
            }
        )

    @_db_errors
    async def api_performance_history(request: Request) -> JSONResponse:
        count = _int_param(request, "count", 20)
        with AnalyzerDB(db_path) as db:
            samples = recent_samples(db.conn, count)
        history = [
            {
                "timestamp": s.timestamp,
                "cpu_usage": round(s.cpu_percent, 2),
                "memory_usage": round(s.memory_percent, 2),
                "memory_rss": s.memory_rss,
                "event_loop_lag": round(s.event_loop_lag_ms, 2),
            }
            for s in samples
        ]
        return JSONResponse({"history": history, "count": len(history)})

    @_db_errors
    async def api_alerts(request: Request) -> JSONResponse:
        limit = _int_param(request, "limit", 10)
        with AnalyzerDB(db_path) as db:
            alerts = [describe_alert(a) for a in alert_history(db.conn, limit=limit)]
        return JSONResponse({"alerts": alerts, "count": len(alerts)})

    async def api_performance_start(request: Request) -> JSONResponse:
        if service.monitor.running:
            return JSONResponse(
                {
                    "success": False,
                    "message": "Performance monitoring is already running",
                    "status": "running",
                }
            )
        if not await service.start_monitoring():
            return JSONResponse(
                {
                    "success": False,
                    "message": "Performance monitoring disabled: interval must be positive",
                    "status": "stopped",
                }
            )
        return JSONResponse(
            {
                "success": True,
                "message": "Performance monitoring started",
                "status": "running",
                "interval": service.config.performance_interval,
                "timestamp": now_ms(),
            }
        )

    async def api_performance_stop(request: Request) -> JSONResponse:
        if not await service.stop_monitoring():
            return JSONResponse(
                {
                    "success": False,
                    "message": "Performance monitoring is not running",
                    "status": "stopped",
                }
            )
        return JSONResponse(
            {
                "success": True,
                "message": "Performance monitoring stopped",
                "status": "stopped",
                "timestamp": now_ms(),
            }
        )

    async def api_performance_status(request: Request) -> JSONResponse:
        running = service.monitor.running
        return JSONResponse(
            {
                "status": "running" if running else "stopped",
                "monitoring": running,
                "interval": service.config.performance_interval,
                "enabled": service.config.performance_monitoring,
                "timestamp": now_ms(),
            }
        )

    # ── system ──────────────────────────────────────────────────────────

    async def api_status(request: Request) -> JSONResponse:
        return JSONResponse({**service.status(), "timestamp": now_ms()})

    async def api_database_status(request: Request) -> JSONResponse:
        try:
            with AnalyzerDB(db_path) as db:
                stats = db.stats()
        except PersistenceError as e:
            logger.error("Database status failed: %s", e)
            return JSONResponse(
                {"status": "error", "error": "Database not available", "initialized": False},
                status_code=500,
            )
        return JSONResponse(
            {"status": "connected", "path": str(db_path), "initialized": True, "statistics": stats}
        )

    async def api_scan_trigger(request: Request) -> JSONResponse:
        """Run a scan pass in a worker thread. POST /api/scan/trigger"""
        result = await run_in_threadpool(service.scan)
        if result.status is ScanStatus.ALREADY_RUNNING:
            return JSONResponse({"success": False, "message": "Scan already in progress"})
        if result.status is ScanStatus.DISABLED:
            return JSONResponse({"success": False, "message": "Code analysis is disabled"})
        if result.status is ScanStatus.ABORTED:
            return JSONResponse(
                {"success": False, "message": "Scan aborted", "details": str(result.error)},
                status_code=500,
            )
        return JSONResponse(
            {
                "success": True,
                "message": "Scan completed",
                "report": result.report.to_dict(),
                "timestamp": now_ms(),
            }
        )

    # ── settings ────────────────────────────────────────────────────────

    @_db_errors
    async def api_settings(request: Request) -> JSONResponse:
        with AnalyzerDB(db_path) as db:
            rows = describe_settings(db.conn)
        grouped: dict[str, list[dict[str, Any]]] = {}
        for row in rows:
            grouped.setdefault(row["category"], []).append(
                {k: row[k] for k in ("key", "value", "description", "type")}
            )
        return JSONResponse(
            {
                "settings": {row["key"]: row["value"] for row in rows},
                "grouped": grouped,
                "categories": sorted(grouped),
            }
        )

    @_db_errors
    async def api_settings_patch(request: Request) -> JSONResponse:
        body = await _json_body(request)
        values = body.get("settings") if isinstance(body, dict) else None
        if not isinstance(values, dict):
            return JSONResponse({"error": "Settings object is required"}, status_code=400)
        try:
            with AnalyzerDB(db_path) as db:
                updated = update_settings(db.conn, values)
        except InvalidConfigError as e:
            return JSONResponse({"success": False, "error": str(e)}, status_code=400)
        await service.reload_settings()
        return JSONResponse(
            {"success": True, "settings": updated, "message": f"Updated {len(updated)} settings"}
        )

    @_db_errors
    async def api_setting(request: Request) -> JSONResponse:
        key = request.path_params["key"]
        with AnalyzerDB(db_path) as db:
            try:
                value = get_setting(db.conn, key)
            except KeyError:
                return JSONResponse({"error": "Setting not found"}, status_code=404)
            row = next(r for r in describe_settings(db.conn) if r["key"] == key)
        return JSONResponse({**row, "value": value})

    @_db_errors
    async def api_setting_put(request: Request) -> JSONResponse:
        key = request.path_params["key"]
        body = await _json_body(request)
        if not isinstance(body, dict) or "value" not in body:
            return JSONResponse({"error": "Key and value are required"}, status_code=400)
        try:
            with AnalyzerDB(db_path) as db:
                get_setting(db.conn, key)
                value = update_setting(db.conn, key, body["value"])
        except KeyError:
            return JSONResponse({"error": "Setting not found"}, status_code=404)
        except InvalidConfigError as e:
            return JSONResponse({"success": False, "error": str(e)}, status_code=400)
        await service.reload_settings()
        return JSONResponse(
            {"success": True, "key": key, "value": value, "message": "Setting updated successfully"}
        )

    @_db_errors
    async def api_settings_reset(request: Request) -> JSONResponse:
        with AnalyzerDB(db_path) as db:
            settings = reset_settings(db.conn)
        await service.reload_settings()
        return JSONResponse(
            {"success": True, "settings": settings, "message": "Settings reset to defaults"}
        )

    @_db_errors
    async def api_settings_reload(request: Request) -> JSONResponse:
        config = await service.reload_settings()
        return JSONResponse(
            {
                "success": True,
                "message": "Settings reloaded and services restarted",
                "performanceMonitoring": config.performance_monitoring,
                "performanceInterval": config.performance_interval,
            }
        )

    @contextlib.asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        startup = None
        if start_services:
            if service.probe.poll() is Readiness.READY:
                await service.start(wait_for_host=False)
            else:
                startup = asyncio.get_running_loop().create_task(service.start())
        try:
            yield
        finally:
            if startup is not None and not startup.done():
                startup.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await startup
            await service.stop()

    routes = [
        # Quality
        Route("/api/quality-summary", api_quality_summary),
        Route("/api/quality-history", api_quality_history),
        Route("/api/flow-quality/{flow_id}", api_flow_quality),
        Route("/api/flow-issues/{flow_id}", api_flow_issues),
        Route("/api/node-quality/{flow_id}/{node_id}", api_node_quality),
        # Performance
        Route("/api/performance-summary", api_performance_summary),
        Route("/api/performance-history", api_performance_history),
        Route("/api/alerts", api_alerts),
        Route("/api/performance/start", api_performance_start, methods=["POST"]),
        Route("/api/performance/stop", api_performance_stop, methods=["POST"]),
        Route("/api/performance/status", api_performance_status),
        # System
        Route("/api/status", api_status),
        Route("/api/database-status", api_database_status),
        Route("/api/scan/trigger", api_scan_trigger, methods=["POST"]),
        # Settings
        Route("/api/settings", api_settings, methods=["GET"]),
        Route("/api/settings", api_settings_patch, methods=["PATCH"]),
        Route("/api/settings/reset", api_settings_reset, methods=["POST"]),
        Route("/api/settings/reload", api_settings_reload, methods=["POST"]),
        Route("/api/settings/{key}", api_setting, methods=["GET"]),
        Route("/api/settings/{key}", api_setting_put, methods=["PUT"]),
    ]

    return Starlette(routes=routes, lifespan=lifespan)
