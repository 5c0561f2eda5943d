"""
Concurrent computation of the transaction metrics.

One producer broadcasts the transaction stream to eight reducers, each
reading its own ``asyncio.Queue`` and owning its own accumulator. Queues are
bounded, so the producer blocks on the slowest reducer instead of dropping
elements. The median reducer keeps every amount it receives; its queue is
unbounded since it never slows down, but its accumulator grows with the
stream: computing a median retains the whole filtered stream's amounts in
memory, which is the scaling limit of this engine.

All tasks run in one ``asyncio.TaskGroup``: a failing reducer cancels the
others and the call raises a single ``AggregationError``.
"""

import asyncio
import math
from abc import ABC, abstractmethod
from typing import Any, AsyncIterable, Callable, Iterable, List, Optional, Tuple, Union

from ..config.constants import DEFAULT_BROADCAST_BUFFER_SIZE
from ..domain.models import Metric, Transaction
from ..domain.values import Category
from ..utils.exceptions import AggregationError
from ..utils.logging import get_logger

logger = get_logger(__name__)

TransactionSource = Union[Iterable[Transaction], AsyncIterable[Transaction]]

_END = object()


def _mean(total: float, count: int) -> float:
    if count <= 0:
        return 0.0
    mean = total / count
    if not math.isfinite(mean):
        raise OverflowError(f"Non-finite mean: {total} / {count}")
    return mean


class Reducer(ABC):
    """Fold over one branch of the broadcast."""

    name: str = "reducer"
    # Queue size of this reducer's branch; 0 means unbounded, None the engine default
    buffer_size: Optional[int] = None

    @abstractmethod
    def update(self, transaction: Transaction) -> None:
        """Fold one transaction into the accumulator."""

    @abstractmethod
    def result(self) -> Any:
        """Final value; also defined for an empty branch."""


class AveragePricePerSquareMeter(Reducer):
    """Mean of amount / constructed area over transactions with a positive area."""

    name = "average_price_per_square_meter"

    def __init__(self):
        self.total = 0.0
        self.count = 0

    def update(self, transaction: Transaction) -> None:
        area = transaction.estate.constructed_area
        if area > 0:
            self.total += transaction.amount / area
            self.count += 1

    def result(self) -> float:
        return _mean(self.total, self.count)


class CategoryDistribution(Reducer):
    """Percentages of houses and apartments."""

    name = "housing_nature_distribution"

    def __init__(self):
        self.maisons = 0
        self.appartements = 0

    def update(self, transaction: Transaction) -> None:
        category = transaction.estate.category
        if category == Category.MAISON:
            self.maisons += 1
        elif category == Category.APPARTEMENT:
            self.appartements += 1

    def result(self) -> Tuple[float, float]:
        total = self.maisons + self.appartements
        if total == 0:
            return (0.0, 0.0)
        return (self.maisons / total * 100, self.appartements / total * 100)


class Average(Reducer):
    """Mean of one numeric attribute."""

    def __init__(self, name: str, value: Callable[[Transaction], float]):
        self.name = name
        self.value = value
        self.total = 0.0
        self.count = 0

    def update(self, transaction: Transaction) -> None:
        self.total += self.value(transaction)
        self.count += 1

    def result(self) -> float:
        return _mean(self.total, self.count)


class TransactionCount(Reducer):

    name = "transaction_count"

    def __init__(self):
        self.count = 0

    def update(self, transaction: Transaction) -> None:
        self.count += 1

    def result(self) -> int:
        return self.count


class MedianAmount(Reducer):
    """Median of the amounts. Retains every amount of its branch."""

    name = "median_transaction_amount"
    buffer_size = 0

    def __init__(self):
        self.amounts: List[float] = []

    def update(self, transaction: Transaction) -> None:
        self.amounts.append(transaction.amount)

    def result(self) -> Optional[float]:
        return median(self.amounts)


def median(values: Iterable[float]) -> Optional[float]:
    """Middle value, mean of the two middle values for an even count, ``None`` if empty."""
    ordered = sorted(values)
    n = len(ordered)
    if n == 0:
        return None
    if n % 2 == 1:
        return ordered[n // 2]
    return (ordered[n // 2 - 1] + ordered[n // 2]) / 2.0


def default_reducers() -> List[Reducer]:
    """Fresh reducers, in the positional order of ``Metric``."""
    return [
        AveragePricePerSquareMeter(),
        CategoryDistribution(),
        Average("average_price", lambda t: t.amount),
        TransactionCount(),
        Average("average_room_count", lambda t: t.estate.rooms),
        Average("average_constructed_area", lambda t: t.estate.constructed_area),
        Average("average_land_area", lambda t: t.estate.land_area),
        MedianAmount(),
    ]


async def _broadcast(source: TransactionSource, queues: List[asyncio.Queue]) -> None:
    if hasattr(source, "__aiter__"):
        async for transaction in source:
            for queue in queues:
                await queue.put(transaction)
    else:
        for transaction in source:
            for queue in queues:
                await queue.put(transaction)
    for queue in queues:
        await queue.put(_END)


async def _reduce(reducer: Reducer, queue: asyncio.Queue) -> Any:
    while True:
        item = await queue.get()
        if item is _END:
            return reducer.result()
        reducer.update(item)


async def compute_metrics(
    transactions: TransactionSource,
    buffer_size: int = DEFAULT_BROADCAST_BUFFER_SIZE,
) -> Metric:
    """Compute the metrics of a transaction stream in a single pass.

    Args:
        transactions: Iterable or async iterable of validated transactions
        buffer_size: Per-branch queue size of the broadcast

    Returns:
        The metrics; an empty stream gives zeroed averages and no median

    Raises:
        AggregationError: If a reducer or the source fails; no partial
            metric is returned
    """
    if buffer_size <= 0:
        raise ValueError("buffer_size must be positive")

    reducers = default_reducers()
    queues = [
        asyncio.Queue(maxsize=buffer_size if r.buffer_size is None else r.buffer_size)
        for r in reducers
    ]
    logger.info("Computing metrics", reducers=len(reducers), buffer_size=buffer_size)

    try:
        async with asyncio.TaskGroup() as group:
            group.create_task(_broadcast(transactions, queues), name="broadcast")
            tasks = [
                group.create_task(_reduce(reducer, queue), name=reducer.name)
                for reducer, queue in zip(reducers, queues)
            ]
    except ExceptionGroup as eg:
        logger.error(
            "Metrics computation failed",
            errors=[f"{type(e).__name__}: {e}" for e in eg.exceptions],
        )
        raise AggregationError(
            f"Metrics computation failed: {eg.exceptions[0]}", causes=eg.exceptions
        ) from eg

    (
        price_per_m2,
        distribution,
        average_price,
        count,
        average_rooms,
        average_constructed_area,
        average_land_area,
        median_amount,
    ) = [task.result() for task in tasks]

    metric = Metric(
        average_price=average_price,
        average_price_per_square_meter=price_per_m2,
        average_room_count=average_rooms,
        average_constructed_area=average_constructed_area,
        average_land_area=average_land_area,
        median_transaction_amount=median_amount,
        transaction_count=count,
        housing_nature_distribution=distribution,
    )
    logger.info("Metrics computed", transaction_count=count)
    return metric


def run_metrics(
    transactions: TransactionSource,
    buffer_size: int = DEFAULT_BROADCAST_BUFFER_SIZE,
) -> Metric:
    """Synchronous entry point around ``compute_metrics``."""
    return asyncio.run(compute_metrics(transactions, buffer_size))
