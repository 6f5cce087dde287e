"""Client for pushing collected FTL metrics via Prometheus remote write."""

import sys
from datetime import datetime
from typing import Any, Dict, Iterable, Optional

import requests
import snappy
from google.protobuf.json_format import MessageToJson
from prometheus_client.core import Metric

from prometheus_remote_writer.proto import remote_pb2 as prompb_pb2
from prometheus_remote_writer.proto import types_pb2

from .utils import format_labels


class RemoteWriteClient:
    """Client for sending Prometheus metrics via remote write."""

    def __init__(self, remote_write_url: str, headers: Optional[Dict[str, str]] = None, instance_label: str = 'ftl', verbose: bool = False):
        self.remote_write_url = remote_write_url
        self.headers = dict(headers or {})
        self.headers.setdefault('Content-Type', 'application/x-protobuf')
        self.headers.setdefault('Content-Encoding', 'snappy')
        self.instance_label = instance_label
        self.verbose = verbose

    def build_write_request(self, metrics: Iterable[Metric], timestamp: Optional[datetime] = None):
        """Convert collected metric families into a remote write request.

        Every sample gets the same timestamp (now by default) and an
        ``instance`` label.
        """
        timestamp = timestamp or datetime.now()
        timestamp_ms = int(timestamp.timestamp() * 1000)

        write_request = prompb_pb2.WriteRequest()  # type: ignore
        time_series_map: Dict[tuple, Any] = {}

        for metric in metrics:
            for sample in metric.samples:
                # Counter creation timestamps are not useful to a remote store
                if sample.name.endswith('_created'):
                    continue
                self._add_sample_to_map(time_series_map, sample.name, sample.labels, sample.value, timestamp_ms)

        for time_series in time_series_map.values():
            new_ts = write_request.timeseries.add()
            new_ts.CopyFrom(time_series)

        return write_request

    def send_metrics(self, metrics: Iterable[Metric], dry_run: bool = False, debug_file: Optional[str] = None) -> bool:
        """Send collected metrics to the remote write endpoint.

        Args:
            metrics: Metric families, e.g. from ``registry.collect()``
            dry_run: If True, build the request but skip sending it
            debug_file: Optional path to save the uncompressed request as JSON

        Returns:
            True if successful, False otherwise
        """
        try:
            write_request = self.build_write_request(metrics)

            num_timeseries = len(write_request.timeseries)
            print(f"Prepared {num_timeseries} time series", file=sys.stderr)

            data = write_request.SerializeToString()

            if debug_file:
                self._write_debug_file(write_request, debug_file)

            if dry_run:
                print("Dry-run mode: Skipping actual send to endpoint", file=sys.stderr)
                return True

            compressed_data = snappy.compress(data)
            print(f"Sending {len(compressed_data)} bytes (uncompressed: {len(data)} bytes)", file=sys.stderr)

            current_time = datetime.now()
            response = requests.post(
                self.remote_write_url,
                data=compressed_data,
                headers=self.headers,
                timeout=30
            )

            if response.status_code == 200 or response.status_code == 204:
                print(f"Successfully sent metrics (status {response.status_code}) at {current_time.isoformat()}", file=sys.stderr)
                return True
            else:
                print(f"Error sending metrics: {response.status_code} - {response.text}", file=sys.stderr)
                print(f"Response headers: {dict(response.headers)}", file=sys.stderr)
                return False
        except requests.exceptions.ConnectionError:
            print(f"Connection error: Could not connect to {self.remote_write_url}", file=sys.stderr)
            print("  Make sure Prometheus is running and the remote write receiver is enabled", file=sys.stderr)
            print("  Start Prometheus with: --web.enable-remote-write-receiver", file=sys.stderr)
            return False
        except requests.exceptions.RequestException as e:
            print(f"Error in remote write: {e}", file=sys.stderr)
            return False

    def _write_debug_file(self, write_request, debug_file: str) -> None:
        """Save the uncompressed request as JSON."""
        # The keyword for printing default values changed in protobuf 26
        for kwargs in ({'always_print_fields_with_no_presence': True},
                       {'including_default_value_fields': True},
                       {}):
            try:
                json_data = MessageToJson(write_request, **kwargs)
                break
            except TypeError:
                continue
        else:
            print(f"Warning: Failed to write debug file {debug_file}: could not serialize payload", file=sys.stderr)
            return

        try:
            with open(debug_file, 'w', encoding='utf-8') as f:
                f.write(json_data)
        except OSError as e:
            print(f"Warning: Failed to write debug file {debug_file}: {e}", file=sys.stderr)
            return
        print(f"Saved uncompressed payload as JSON ({len(json_data)} bytes) to {debug_file}", file=sys.stderr)

    def _print_metric_sample(self, time_series, timestamp_ms: int, value: float) -> None:
        """Print a single metric sample in verbose mode."""
        metric_name = None
        labels = {}
        for label in time_series.labels:
            if label.name == '__name__':
                metric_name = label.value
            else:
                labels[label.name] = label.value

        timestamp_dt = datetime.fromtimestamp(timestamp_ms / 1000.0)
        print(f"{timestamp_dt.isoformat()} {metric_name}{format_labels(labels)} {value}")

    def _add_sample_to_map(self, time_series_map: Dict[tuple, Any], metric_name: str, labels: Dict[str, str], value: float, timestamp_ms: int):
        """Add a sample to the time series map, grouping by metric name and labels."""
        labels_with_instance = dict(labels)
        labels_with_instance['instance'] = self.instance_label

        sorted_labels = tuple(sorted(labels_with_instance.items()))
        key = (metric_name, sorted_labels)

        if key not in time_series_map:
            time_series = types_pb2.TimeSeries()  # type: ignore

            label = time_series.labels.add()
            label.name = '__name__'
            label.value = metric_name

            # Remote write receivers expect labels sorted by name
            for key_name, val in sorted_labels:
                label = time_series.labels.add()
                label.name = key_name
                label.value = str(val)

            time_series_map[key] = time_series

        sample = time_series_map[key].samples.add()
        sample.value = value
        sample.timestamp = timestamp_ms

        if self.verbose:
            self._print_metric_sample(time_series_map[key], timestamp_ms, value)
