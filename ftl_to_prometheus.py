#!/usr/bin/env python3
"""
Query the Pi-hole FTL daemon and expose its statistics as Prometheus metrics.

Run from a checkout; installed copies provide the ``ftl-exporter`` command.
"""

from ftl_exporter.ftl_to_prometheus import main


if __name__ == '__main__':
    main()
