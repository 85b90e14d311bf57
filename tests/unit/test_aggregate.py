from datetime import timedelta

from fuelwatch.pipeline.aggregate import aggregate, filter_records_by_retailer, filter_snapshots_by_retailer, matches_retailer

from factories import NOW, make_snapshot, make_station


def test_aggregate_tags_records_and_keeps_order():
    snapshots = [
        make_snapshot("Asda", [make_station("A1", E10=140.0), make_station("A2", E10=141.0)]),
        make_snapshot("Tesco", [make_station("T1", E10=139.0)], last_updated=NOW + timedelta(hours=1)),
    ]

    result = aggregate(snapshots)

    assert [(r.retailer, r.station.site_id) for r in result.records] == [("Asda", "A1"), ("Asda", "A2"), ("Tesco", "T1")]
    assert result.last_updated == NOW + timedelta(hours=1)
    assert all(r.distance is None for r in result.records)


def test_aggregate_empty_input():
    result = aggregate([])
    assert result.records == ()
    assert result.last_updated is None


def test_aggregate_keeps_duplicate_site_ids_across_retailers():
    snapshots = [make_snapshot("Asda", [make_station("X", E10=1.0)]), make_snapshot("BP", [make_station("X", E10=2.0)])]
    assert len(aggregate(snapshots).records) == 2


def test_retailer_filter_is_case_insensitive_substring():
    assert matches_retailer("Esso Tesco Alliance", "tesco")
    assert matches_retailer("Asda", None)
    assert matches_retailer("Asda", "  ")
    assert not matches_retailer("Asda", "bp")

    snapshots = [make_snapshot("Asda", []), make_snapshot("Esso Tesco Alliance", []), make_snapshot("Tesco", [])]
    assert [s.retailer_name for s in filter_snapshots_by_retailer(snapshots, "TESCO")] == ["Esso Tesco Alliance", "Tesco"]

    records = aggregate([make_snapshot("Asda", [make_station("A")]), make_snapshot("BP", [make_station("B")])]).records
    assert [r.retailer for r in filter_records_by_retailer(records, "bp")] == ["BP"]
