"""Business acceptance rule applied to every parsed transaction."""

from ..config.constants import SALE_NATURE
from ..domain.models import Transaction
from ..domain.values import Category


def is_valid_transaction(transaction: Transaction) -> bool:
    """Accept actual sales of a house or an apartment with a positive amount and area."""
    return (
        transaction.amount > 0
        and transaction.estate.category in (Category.MAISON, Category.APPARTEMENT)
        and transaction.nature == SALE_NATURE
        and transaction.estate.constructed_area > 0
    )
