"""Positional layout of the geolocated DVF CSV export."""

from typing import Dict, List

from ..utils.exceptions import SchemaMismatchError


# Zero-based field positions used by the record parser
DATE_FIELD = 1
NATURE_FIELD = 3
AMOUNT_FIELD = 4
NUMBER_FIELD = 5
SUFFIX_FIELD = 6
STREET_FIELD = 7
POSTAL_CODE_FIELD = 9
CITY_FIELD = 11
DEPARTMENT_CODE_FIELD = 12
CATEGORY_FIELD = 30
CONSTRUCTED_AREA_FIELD = 31
ROOM_COUNT_FIELD = 32
LAND_AREA_FIELD = 37
LONGITUDE_FIELD = 38
LATITUDE_FIELD = 39

EXPECTED_FIELD_COUNT = 40

# Column name expected at each referenced position of the header line
EXPECTED_COLUMNS: Dict[int, str] = {
    DATE_FIELD: "date_mutation",
    NATURE_FIELD: "nature_mutation",
    AMOUNT_FIELD: "valeur_fonciere",
    NUMBER_FIELD: "adresse_numero",
    SUFFIX_FIELD: "adresse_suffixe",
    STREET_FIELD: "adresse_nom_voie",
    POSTAL_CODE_FIELD: "code_postal",
    CITY_FIELD: "nom_commune",
    DEPARTMENT_CODE_FIELD: "code_departement",
    CATEGORY_FIELD: "type_local",
    CONSTRUCTED_AREA_FIELD: "surface_reelle_bati",
    ROOM_COUNT_FIELD: "nombre_pieces_principales",
    LAND_AREA_FIELD: "surface_terrain",
    LONGITUDE_FIELD: "longitude",
    LATITUDE_FIELD: "latitude",
}

HEADER_PREFIX = "id_mutation"


def is_header(line: str) -> bool:
    """True when ``line`` is the column header of an export."""
    return line.lstrip("\ufeff").startswith(HEADER_PREFIX)


def header_columns() -> List[str]:
    """A 40-column header carrying the expected names at the referenced positions."""
    columns = [f"col_{i}" for i in range(EXPECTED_FIELD_COUNT)]
    columns[0] = HEADER_PREFIX
    for position, name in EXPECTED_COLUMNS.items():
        columns[position] = name
    return columns


def validate_header(line: str, separator: str = ",") -> None:
    """Check a header line against the expected column layout.

    Args:
        line: Header line of a year's export
        separator: Field separator

    Raises:
        SchemaMismatchError: If the field count is too small or a referenced
            position carries another column
    """
    columns = [c.strip().strip('"') for c in line.lstrip("\ufeff").rstrip("\r\n").split(separator)]

    if len(columns) < EXPECTED_FIELD_COUNT:
        raise SchemaMismatchError(
            f"Header has {len(columns)} fields, expected at least {EXPECTED_FIELD_COUNT}"
        )

    mismatches = {
        position: columns[position]
        for position, name in EXPECTED_COLUMNS.items()
        if columns[position] != name
    }
    if mismatches:
        details = ", ".join(
            f"{position}: {found!r} (expected {EXPECTED_COLUMNS[position]!r})"
            for position, found in sorted(mismatches.items())
        )
        raise SchemaMismatchError(f"Unexpected header columns at {details}")
