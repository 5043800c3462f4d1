import pytest

from spo.stats import RunStats, StatsAccumulator, compute_savings, format_bytes, render_summary


def test_record_accumulates():
    acc = StatsAccumulator()
    acc.record(500, 300)
    acc.record(300, 150)

    r = acc.report()
    assert r.files_processed == 2
    assert r.original_size == 800
    assert r.optimized_size == 450

    s = acc.savings()
    assert s.saved_bytes == 350
    assert s.saved_percentage == 43.75


def test_savings_zero_original():
    s = compute_savings(0, 0)
    assert s.saved_bytes == 0
    assert s.saved_percentage == 0
    assert s.compression_ratio == 1.0


def test_savings_rounding_and_growth():
    s = compute_savings(3, 1)
    assert s.saved_bytes == 2
    assert s.saved_percentage == 66.67

    grown = compute_savings(100, 120)
    assert grown.saved_bytes == -20
    assert grown.saved_percentage == -20.0


def test_record_rejects_negative_sizes():
    acc = StatsAccumulator()
    with pytest.raises(ValueError):
        acc.record(10, -1)
    assert acc.files_processed == 0


def test_elapsed_is_frozen_after_stop():
    acc = StatsAccumulator()
    assert acc.elapsed_millis == 0
    acc.start()
    acc.stop()
    first = acc.elapsed_millis
    assert first >= 0
    assert acc.elapsed_millis == first


@pytest.mark.parametrize(
    "n, text",
    [
        (0, "0 B"),
        (500, "500 B"),
        (1024, "1 KB"),
        (1536, "1.5 KB"),
        (1024 * 1024, "1 MB"),
        (1234567, "1.18 MB"),
        (-2048, "-2 KB"),
    ],
)
def test_format_bytes(n, text):
    assert format_bytes(n) == text


def test_render_summary():
    text = render_summary(RunStats(original_size=800, optimized_size=450, files_processed=2, elapsed_millis=1500))
    assert "Files processed : 2" in text
    assert "(43.75%)" in text
    assert "1.50s" in text
    assert "Assets are smaller now" in text

    nothing = render_summary(RunStats(0, 0, 0, 0))
    assert "already optimized" in nothing
