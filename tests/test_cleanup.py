import logging
from datetime import datetime, timezone

import pytest

from deal_reconcile.datasets import BIGIN_LAYOUT, BIGIN_SCHEMA
from deal_reconcile.errors import DealParseError
from deal_reconcile.schema import FieldTag, PipelineLayout
from deal_reconcile.steps.cleanup import DealCleaner, partition_deals


def _raw(**overrides: object) -> dict[str, object]:
    record: dict[str, object] = {
        "id": "l1",
        "Deal_Name": " Juan Pérez ",
        "Telefono": "300 123 4567",
        "email": "",
        "CallBell": None,
        "Amount": "159,900",
        "Stage": "DEVOLUCIÓN",
        "Pipeline": {"name": "Ventas Somnio", "id": "1"},
        "Sub_Pipeline": "LOGISTICA",
        "Created_Time": "2024-03-01T10:00:00-05:00",
    }
    record.update(overrides)
    return record


def test_cleaner_parses_bigin_record() -> None:
    [deal] = DealCleaner(schema=BIGIN_SCHEMA).clean([_raw()]).deals

    assert deal.deal_id == "l1"
    assert deal.name == "Juan Pérez"
    assert deal.email is None
    assert deal.amount == 159900.0
    assert deal.stage == "DEVOLUCION"
    assert deal.pipeline == "Ventas Somnio"
    assert deal.sub_pipeline == "LOGISTICA"
    assert deal.created_time == datetime(2024, 3, 1, 15, 0, tzinfo=timezone.utc)
    assert deal.modified_time == deal.created_time
    # Phones stay raw until a pass indexes them.
    assert deal.phone == "300 123 4567"
    assert deal.attributes["Telefono"] == "300 123 4567"


def test_naive_timestamps_are_read_as_utc() -> None:
    [deal] = DealCleaner(schema=BIGIN_SCHEMA).clean(
        [_raw(Created_Time="2024-03-01T10:00:00", Modified_Time="not a date")]
    ).deals

    assert deal.created_time == datetime(2024, 3, 1, 10, 0, tzinfo=timezone.utc)
    assert deal.modified_time == deal.created_time


def test_schema_parse_raises_on_missing_creation_time() -> None:
    with pytest.raises(ValueError) as excinfo:
        BIGIN_SCHEMA.parse(_raw(Created_Time=""))

    assert isinstance(excinfo.value, DealParseError)
    assert excinfo.value.record_id == "l1"


def test_unparseable_records_are_set_aside_not_raised() -> None:
    cleaned = DealCleaner(schema=BIGIN_SCHEMA).clean(
        [
            _raw(id="l1"),
            _raw(id=None),
            _raw(id="l2", Created_Time=""),
            _raw(id="l3", Created_Time="not a date"),
        ]
    )

    assert [deal.deal_id for deal in cleaned.deals] == ["l1"]
    assert [record.record_id for record in cleaned.rejected] == [None, "l2", "l3"]
    assert all(record.pipeline == "Ventas Somnio" for record in cleaned.rejected)


def test_malformed_record_of_the_pipeline_counts_as_invalid() -> None:
    cleaned = DealCleaner(schema=BIGIN_SCHEMA).clean(
        [_raw(id="l1"), _raw(id=None), _raw(id="l2", Created_Time="")]
    )

    partition = partition_deals(cleaned.deals, BIGIN_LAYOUT, cleaned.rejected)

    assert [deal.deal_id for deal in partition.logistics] == ["l1"]
    assert partition.invalid == 2
    assert partition.skipped == 0
    assert partition.record_count == 1


def test_malformed_record_of_another_pipeline_counts_as_skipped() -> None:
    cleaned = DealCleaner(schema=BIGIN_SCHEMA).clean(
        [
            _raw(id="l1"),
            _raw(id="x1", Created_Time=None, Pipeline={"name": "Sales Pipeline", "id": "2"}),
        ]
    )

    [rejected] = cleaned.rejected
    assert rejected.record_id == "x1"
    assert rejected.pipeline == "Sales Pipeline"

    partition = partition_deals(cleaned.deals, BIGIN_LAYOUT, cleaned.rejected)

    assert partition.skipped == 1
    assert partition.invalid == 0
    assert partition.record_count == 1


def test_cleaner_logs_rejections_once(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger="deal_reconcile.steps.cleanup"):
        DealCleaner(schema=BIGIN_SCHEMA).clean([_raw(id=None), _raw(id="l2", Created_Time="")])

    warnings = [record for record in caplog.records if record.levelno == logging.WARNING]
    assert len(warnings) == 1
    assert "Rejected 2 records" in warnings[0].getMessage()


def test_tag_transforms_apply_to_plain_columns_only() -> None:
    cleaner = DealCleaner(
        schema=BIGIN_SCHEMA,
        tag_transforms={FieldTag.EMAIL: str.lower, FieldTag.PIPELINE: str.upper},
    )

    [deal] = cleaner.clean([_raw(email="Juan.Perez@Example.COM")]).deals

    assert deal.email == "juan.perez@example.com"
    assert deal.pipeline == "Ventas Somnio"


def test_partition_counts_skipped_and_unclassified() -> None:
    cleaner = DealCleaner(schema=BIGIN_SCHEMA)
    cleaned = cleaner.clean(
        [
            _raw(id="s1", Sub_Pipeline="Ventas Somnio Standard"),
            _raw(id="l1"),
            _raw(id="e1", Sub_Pipeline="ENVIOS SOMNIO"),
            _raw(id="x1", Pipeline={"name": "Sales Pipeline", "id": "2"}),
            _raw(id="x2", Pipeline=None),
            _raw(id="u1", Sub_Pipeline="POSTVENTA"),
        ]
    )

    partition = partition_deals(cleaned.deals, BIGIN_LAYOUT, cleaned.rejected)

    assert [deal.deal_id for deal in partition.sales] == ["s1"]
    assert [deal.deal_id for deal in partition.logistics] == ["l1"]
    assert [deal.deal_id for deal in partition.shipping] == ["e1"]
    assert partition.skipped == 2
    assert partition.unclassified == 1
    assert partition.record_count == 3


def test_partition_without_pipeline_filter_accepts_any_pipeline() -> None:
    deals = DealCleaner(schema=BIGIN_SCHEMA).clean([_raw(Pipeline={"name": "Sales Pipeline", "id": "2"})]).deals
    layout = PipelineLayout(
        pipeline=None,
        sales=BIGIN_LAYOUT.sales,
        logistics=BIGIN_LAYOUT.logistics,
        shipping=BIGIN_LAYOUT.shipping,
    )

    partition = partition_deals(deals, layout)

    assert len(partition.logistics) == 1
    assert partition.skipped == 0
