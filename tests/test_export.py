import csv

from aisle_nav.export import CSVWriter, Reporter


def test_csv_writer_logs_one_row_per_tick(tmp_path, engine, shopping_list):
    engine.load_shopping_list(shopping_list)
    engine.start()
    path = tmp_path / "out" / "trace.csv"

    with CSVWriter(path) as writer:
        for _ in range(30):
            writer.append(engine.tick())

    with open(path, newline='') as f:
        rows = list(csv.DictReader(f))

    assert len(rows) == 30
    assert list(rows[0].keys()) == CSVWriter.FIELDNAMES
    assert rows[0]['phase'] == "approaching"
    assert float(rows[-1]['clock']) == 0.5


def test_reporter_summarizes_session(engine, shopping_list):
    engine.load_shopping_list(shopping_list)
    engine.start()
    reporter = Reporter(store_name="Test Store", seed=7)
    for _ in range(120):
        reporter.update(engine.tick())

    report = reporter.generate_summary(engine.get_summary(), alerts_seen=2)

    assert reporter.snapshots_seen == 120
    assert reporter.peak_speed <= engine.config.movement.max_speed
    assert "AISLE NAVIGATION SESSION REPORT" in report
    assert "Store: Test Store" in report
    assert "Random Seed: 7" in report
    assert "Products Collected:    0 / 3" in report
    assert "Traffic Alerts:        2" in report


def test_csv_writer_extend_counts_rows(tmp_path, engine, shopping_list):
    engine.load_shopping_list(shopping_list)
    engine.start()
    snapshots = [engine.tick() for _ in range(10)]
    writer = CSVWriter(tmp_path / "trace.csv", flush_every=4)

    writer.extend(snapshots)
    assert writer.is_open
    assert writer.rows_written == 10
    writer.close()
    assert not writer.is_open

    with open(tmp_path / "trace.csv", newline='') as f:
        assert len(list(csv.DictReader(f))) == 10
