"""Pytest configuration and shared fixtures."""

import pytest
from datetime import date
from pathlib import Path
import tempfile

from dvf_metrics.data.loader import TransactionStream
from fixtures.generate_test_data import (
    generate_lines,
    make_line,
    make_transaction,
    write_export,
)


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test outputs."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def valid_line():
    """A well-formed 40-field export line."""
    return make_line()


@pytest.fixture
def sample_lines():
    """Synthetic export lines for 2018, a few of them malformed."""
    return generate_lines(500, year=2018, seed=42, malformed_share=0.05)


@pytest.fixture
def sample_transactions():
    """A small, hand-checked set of transactions over several places."""
    return [
        make_transaction(amount=100000, category="Appartement", rooms=2, constructed_area=40,
                         land_area=10, city="Paris", postal_code="75011", department="75"),
        make_transaction(amount=300000, category="Maison", rooms=5, constructed_area=120,
                         land_area=500, city="Lyon", postal_code="69003", department="69",
                         latitude=45.76, longitude=4.849),
        make_transaction(amount=200000, category="Maison", rooms=4, constructed_area=100,
                         land_area=300, city="Marseille", postal_code="13008", department="13",
                         latitude=43.24, longitude=5.375),
        make_transaction(amount=150000, category="Appartement", rooms=3, constructed_area=60,
                         land_area=20, city="Saint-Denis", postal_code="97400", department="974",
                         latitude=-20.882, longitude=55.45),
    ]


@pytest.fixture
def year_mapping(sample_transactions):
    """Per-year streams: 2018 holds the sample transactions, 2019 a single sale."""
    return {
        2018: TransactionStream.from_transactions(2018, sample_transactions),
        2019: TransactionStream.from_transactions(
            2019, [make_transaction(amount=500000, when=date(2019, 6, 1))]
        ),
    }


@pytest.fixture
def data_dir(temp_dir, sample_lines):
    """A directory with a 2018 gzip export and a plain 2019 export."""
    write_export(temp_dir / "2018.csv.gz", sample_lines)
    write_export(temp_dir / "2019.csv", generate_lines(50, year=2019, seed=7))
    return temp_dir
