from deal_reconcile.datasets import BIGIN_COLUMNS, BIGIN_LAYOUT, BIGIN_SCHEMA, ReferenceDealGenerator
from deal_reconcile.steps.cleanup import DealCleaner


def test_generator_is_seeded() -> None:
    first = ReferenceDealGenerator(seed=11).generate(customers=15)
    second = ReferenceDealGenerator(seed=11).generate(customers=15)
    other = ReferenceDealGenerator(seed=12).generate(customers=15)

    assert first == second
    assert first != other


def test_generated_records_use_bigin_columns() -> None:
    records = ReferenceDealGenerator(seed=1).generate(customers=10)

    assert records
    for record in records:
        assert set(record) == set(BIGIN_COLUMNS)
    sub_pipelines = {record["Sub_Pipeline"] for record in records}
    assert sub_pipelines <= {BIGIN_LAYOUT.sales, BIGIN_LAYOUT.logistics, BIGIN_LAYOUT.shipping}
    assert BIGIN_LAYOUT.sales in sub_pipelines


def test_generated_records_parse_cleanly() -> None:
    records = ReferenceDealGenerator(seed=2).generate(customers=10)

    cleaned = DealCleaner(schema=BIGIN_SCHEMA).clean(records)
    deals = cleaned.deals

    assert cleaned.rejected == []
    assert len(deals) == len(records)
    assert all(deal.created_time.tzinfo is not None for deal in deals)
    assert all(deal.stage != "DEVOLUCIÓN" for deal in deals)


def test_no_customers_means_no_records() -> None:
    assert ReferenceDealGenerator().generate(customers=0) == []
