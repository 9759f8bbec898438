"""Tests for the Prometheus metrics export."""

from interviews_media.core.metrics import VIDEO_STREAM_RESPONSES_TOTAL, get_metrics


def test_single_process_export_includes_live_series(monkeypatch) -> None:
    monkeypatch.delenv("PROMETHEUS_MULTIPROC_DIR", raising=False)
    VIDEO_STREAM_RESPONSES_TOTAL.labels(status_code="206").inc()

    output = get_metrics().decode()

    assert output.count("# HELP video_stream_responses_total ") == 1
    assert 'video_stream_responses_total{status_code="206"}' in output


def test_multiprocess_export_reads_only_worker_files(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("PROMETHEUS_MULTIPROC_DIR", str(tmp_path))
    VIDEO_STREAM_RESPONSES_TOTAL.labels(status_code="206").inc()

    # No worker has written samples yet
    assert get_metrics() == b""
    # Repeated scrapes build a fresh registry each time
    assert get_metrics() == b""


def test_multiprocess_export_leaves_live_registry_untouched(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("PROMETHEUS_MULTIPROC_DIR", str(tmp_path))
    get_metrics()
    monkeypatch.delenv("PROMETHEUS_MULTIPROC_DIR")

    output = get_metrics().decode()

    assert output.count("# HELP video_stream_responses_total ") == 1
