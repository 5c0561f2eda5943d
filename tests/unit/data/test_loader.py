"""Unit tests for transaction streams and their loading."""

import asyncio
import gzip

import httpx
import pytest

from dvf_metrics.data.loader import (
    TransactionStream,
    load_transactions,
    load_transactions_from_files,
)
from dvf_metrics.data.schemas import validate_header
from dvf_metrics.data.source import iter_file_lines, iter_lines
from dvf_metrics.domain.models import UserFilters
from dvf_metrics.processing.filters import filter_transactions
from dvf_metrics.processing.metrics import run_metrics
from dvf_metrics.utils.exceptions import IngestionError, SchemaMismatchError

from fixtures.generate_test_data import (
    generate_lines,
    make_header,
    make_line,
    make_transaction,
    write_export,
)


def _payload(lines, header=True, compress=True) -> bytes:
    text = "\n".join(([make_header()] if header else []) + lines) + "\n"
    data = text.encode("utf-8")
    return gzip.compress(data) if compress else data


def _truncated_payload(n_lines=3000) -> bytes:
    archive = _payload(generate_lines(n_lines, year=2018, seed=7))
    return archive[: len(archive) // 2]


def _invalid_utf8_payload(n_lines=3000) -> bytes:
    valid = _payload(generate_lines(n_lines, year=2018, seed=7), compress=False)
    return valid + b"\xff\xfe" + make_line().encode() + b"\n"


class TestHeader:
    """Test the header sanity check."""

    def test_expected_header(self):
        validate_header(make_header())

    def test_renamed_column(self):
        header = make_header().replace("valeur_fonciere", "prix")
        with pytest.raises(SchemaMismatchError, match="valeur_fonciere"):
            validate_header(header)

    def test_too_few_fields(self):
        header = ",".join(make_header().split(",")[:30])
        with pytest.raises(SchemaMismatchError, match="30 fields"):
            validate_header(header)

    def test_other_separator(self):
        validate_header(make_header(separator=";"), separator=";")


class TestSource:
    """Test payload decoding."""

    def test_gzip_payload(self):
        lines = list(iter_lines(_payload([make_line()])))
        assert len(lines) == 2

    def test_plain_payload(self):
        lines = list(iter_lines(_payload([make_line()], compress=False)))
        assert len(lines) == 2

    def test_corrupt_gzip(self):
        with pytest.raises(IngestionError):
            list(iter_lines(b"\x1f\x8b" + b"garbage" * 10))

    def test_invalid_utf8(self):
        with pytest.raises(IngestionError):
            list(iter_lines(b"id_mutation,\xff\xfe\n"))

    def test_file_lines(self, temp_dir):
        path = write_export(temp_dir / "2018.csv.gz", [make_line()])
        assert len(list(iter_file_lines(path))) == 2


class TestTransactionStream:
    """Test the per-year stream."""

    def test_parses_and_validates(self):
        lines = [
            make_line(),
            make_line(nature="Echange"),           # rejected by the validator
            make_line(postal_code="ABCDE"),        # discarded by the parser
            make_line(category="Appartement"),
            "",
        ]
        stream = TransactionStream.from_payload(2018, _payload(lines))

        transactions = list(stream)

        assert len(transactions) == 2
        assert all(t.nature == "Vente" for t in transactions)

    def test_is_reiterable(self, sample_lines):
        stream = TransactionStream.from_payload(2018, _payload(sample_lines))
        first = list(stream)
        second = list(stream)
        assert first == second
        assert len(first) > 0

    def test_headerless_payload(self):
        stream = TransactionStream.from_payload(2018, _payload([make_line()], header=False))
        stream.verify()
        assert len(list(stream)) == 1

    def test_from_transactions(self, sample_transactions):
        stream = TransactionStream.from_transactions(2018, sample_transactions)
        assert list(stream) == sample_transactions
        assert list(stream) == sample_transactions

    def test_empty(self):
        stream = TransactionStream.empty(2020)
        assert list(stream) == []
        assert stream.is_empty_source

    def test_verify_rejects_bad_header(self):
        payload = gzip.compress(("id_mutation,date_mutation\n" + make_line() + "\n").encode())
        with pytest.raises(SchemaMismatchError):
            TransactionStream.from_payload(2018, payload).verify()

    def test_custom_separator(self):
        text = make_header(separator="|") + "\n" + make_line(separator="|") + "\n"
        stream = TransactionStream.from_payload(2018, text.encode(), separator="|")
        stream.verify()
        assert len(list(stream)) == 1

    def test_verify_counts_lines(self):
        stream = TransactionStream.from_payload(2018, _payload(generate_lines(25)))
        assert stream.verify() == 26

    def test_verify_reads_to_the_end(self):
        stream = TransactionStream.from_payload(2018, _truncated_payload())
        with pytest.raises(IngestionError, match="Cannot decode"):
            stream.verify()

    def test_verify_rejects_invalid_text(self):
        stream = TransactionStream.from_payload(2018, _invalid_utf8_payload())
        with pytest.raises(IngestionError, match="Cannot decode"):
            stream.verify()

    def test_headerless_short_first_line(self):
        payload = _payload(["2018-1,2018-03-15,1,Vente,250000"] + [make_line()], header=False)
        with pytest.raises(SchemaMismatchError, match="5 fields"):
            TransactionStream.from_payload(2018, payload).verify()

    def test_headerless_leading_blank_lines(self):
        payload = _payload(["", make_line()], header=False)
        stream = TransactionStream.from_payload(2018, payload)
        assert stream.verify() == 2
        assert len(list(stream)) == 1


class TestLoadFromFiles:

    def test_loads_each_year(self, data_dir):
        mapping = load_transactions_from_files(data_dir, 2018, 2020)

        assert set(mapping) == {2018, 2019, 2020}
        assert len(list(mapping[2018])) > 0
        assert len(list(mapping[2019])) > 0
        assert list(mapping[2020]) == []

    def test_archive_layout(self, temp_dir):
        write_export(temp_dir / "2021" / "full.csv.gz", [make_line(date_mutation="2021-05-01")])
        mapping = load_transactions_from_files(temp_dir, 2021, 2021)
        assert len(list(mapping[2021])) == 1

    def test_bad_header_gives_empty_year(self, temp_dir):
        path = temp_dir / "2018.csv"
        path.write_text("id_mutation,date_mutation\n" + make_line() + "\n", encoding="utf-8")

        mapping = load_transactions_from_files(temp_dir, 2018, 2018)

        assert list(mapping[2018]) == []

    def test_truncated_archive_gives_empty_year(self, temp_dir):
        (temp_dir / "2018.csv.gz").write_bytes(_truncated_payload())
        write_export(temp_dir / "2019.csv.gz", [make_line(date_mutation="2019-01-02")])

        mapping = load_transactions_from_files(temp_dir, 2018, 2019)

        assert mapping[2018].is_empty_source
        assert len(list(mapping[2019])) == 1

    def test_headerless_file_with_wrong_separator(self, temp_dir):
        write_export(temp_dir / "2018.csv", [make_line()], header=False)
        mapping = load_transactions_from_files(temp_dir, 2018, 2018, separator=";")
        assert mapping[2018].is_empty_source


class TestLoadTransactions:
    """Test concurrent remote loading over a mocked transport."""

    def _client(self, responses):
        def handler(request: httpx.Request) -> httpx.Response:
            year = int(request.url.path.split("/")[-2])
            if year not in responses:
                return httpx.Response(404)
            return httpx.Response(200, content=responses[year])

        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    def _load(self, responses, start_year, end_year):
        async def run():
            async with self._client(responses) as client:
                return await load_transactions(
                    start_year, end_year, "https://example.org/geo-dvf/csv", client=client
                )

        return asyncio.run(run())

    def test_loads_all_years(self):
        responses = {
            2018: _payload(generate_lines(20, year=2018, seed=1)),
            2019: _payload(generate_lines(30, year=2019, seed=2)),
        }

        mapping = self._load(responses, 2018, 2019)

        assert set(mapping) == {2018, 2019}
        assert len(list(mapping[2018])) == 20
        assert len(list(mapping[2019])) == 30

    def test_failed_year_is_empty(self):
        responses = {2018: _payload(generate_lines(10, year=2018))}

        mapping = self._load(responses, 2018, 2020)

        assert len(list(mapping[2018])) == 10
        assert list(mapping[2019]) == []
        assert list(mapping[2020]) == []

    def test_schema_mismatch_is_empty(self):
        bad = gzip.compress(b"id_mutation,foo,bar\n" + make_line().encode() + b"\n")
        responses = {2018: bad, 2019: _payload([make_line(date_mutation="2019-01-02")])}

        mapping = self._load(responses, 2018, 2019)

        assert list(mapping[2018]) == []
        assert len(list(mapping[2019])) == 1

    def test_truncated_archive_is_empty(self):
        responses = {
            2018: _truncated_payload(),
            2019: _payload([make_line(date_mutation="2019-01-02")]),
        }

        mapping = self._load(responses, 2018, 2019)

        assert mapping[2018].is_empty_source
        assert list(mapping[2018]) == []
        assert len(list(mapping[2019])) == 1
        metric = run_metrics(filter_transactions(mapping, UserFilters(year=2018)))
        assert metric.transaction_count == 0

    def test_invalid_text_is_empty(self):
        mapping = self._load({2018: _invalid_utf8_payload()}, 2018, 2018)

        assert mapping[2018].is_empty_source
        assert run_metrics(filter_transactions(mapping, UserFilters())).transaction_count == 0

    def test_transport_error_is_empty(self):
        def handler(request):
            raise httpx.ConnectError("unreachable", request=request)

        async def run():
            async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
                return await load_transactions(2018, 2018, "https://example.org/{year}.csv.gz", client=client)

        mapping = asyncio.run(run())
        assert list(mapping[2018]) == []

    def test_url_template_with_placeholder(self):
        seen = []

        def handler(request):
            seen.append(str(request.url))
            return httpx.Response(200, content=_payload([make_line()]))

        async def run():
            async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
                return await load_transactions(2018, 2018, "https://example.org/dvf-{year}.csv.gz", client=client)

        asyncio.run(run())
        assert seen == ["https://example.org/dvf-2018.csv.gz"]


def test_stream_of_parsed_transactions_matches_fixture():
    t = make_transaction()
    stream = TransactionStream.from_payload(2018, _payload([make_line()]))
    assert list(stream) == [t]
