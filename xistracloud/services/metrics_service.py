"""Host metrics snapshots for the dashboard.

All readings come from psutil: CPU and memory utilisation, disk usage of
DEPLOY_ROOT's filesystem, cumulative network counters and uptime since
boot. Network counters are stored as NULL where psutil cannot read them.
"""

import logging
import os
import time

import psutil
from flask import current_app

from xistracloud.extensions import db
from xistracloud.models.system import SystemMetric

logger = logging.getLogger(__name__)

CPU_SAMPLE_SECONDS = 0.5


def _disk_percent(path):
    return psutil.disk_usage(path if os.path.exists(path) else "/").percent


def _network_bytes():
    """Total (received, sent) bytes across all interfaces."""
    counters = psutil.net_io_counters()
    if counters is None:
        return None, None
    return counters.bytes_recv, counters.bytes_sent


def collect():
    network_in, network_out = _network_bytes()
    return {
        "cpu_usage": psutil.cpu_percent(interval=CPU_SAMPLE_SECONDS),
        "memory_usage": psutil.virtual_memory().percent,
        "disk_usage": _disk_percent(current_app.config["DEPLOY_ROOT"]),
        "network_in": network_in,
        "network_out": network_out,
        "uptime": int(time.time() - psutil.boot_time()),
    }


def record_snapshot():
    metric = SystemMetric(**collect())
    db.session.add(metric)
    db.session.commit()
    logger.info(f"Recorded metrics snapshot {metric.id}")
    return metric
