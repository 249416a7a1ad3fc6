import json
import os
from typing import Iterable, Optional

import pandas as pd


def _apply_date_filter(series: pd.Series, date_filter: Optional[Iterable[str]]) -> pd.Series:
    """Keep rows whose ISO date contains any of the given substrings (e.g. years)."""
    if not date_filter:
        return series
    if isinstance(date_filter, str):
        date_filter = [date_filter]
    labels = series.index.strftime("%Y-%m-%dT%H:%M:%S")
    mask = [any(token in label for token in date_filter) for label in labels]
    return series[mask]


def read_csv_prices(path: str, date_filter: Optional[Iterable[str]] = None) -> pd.Series:
    """
    Load a ``date,price`` CSV into a price series indexed by timestamp.

    Prices are kept as strings so they convert to ``Decimal`` exactly.
    Rows without a price are dropped.

    Parameters
    ----------
    path : str
        CSV file with a header row; the first column is the date and the
        ``price`` column holds the price.
    date_filter : iterable of str, optional
        Only keep rows whose date contains one of these substrings.

    Returns
    -------
    pd.Series
        Prices as strings, indexed by ``pd.Timestamp`` in file order.

    Raises
    ------
    FileNotFoundError
        If the file does not exist.
    ValueError
        If the file has no ``price`` column.
    """
    if not os.path.isfile(path):
        raise FileNotFoundError(f"Price file not found: {path}")

    df = pd.read_csv(path, dtype=str, skip_blank_lines=True)
    if "price" not in df.columns:
        raise ValueError("Price CSV must have a 'price' column.")

    date_column = "date" if "date" in df.columns else df.columns[0]
    df = df.dropna(subset=["price"])
    df = df[df["price"].str.strip() != ""]

    series = pd.Series(
        df["price"].str.strip().values,
        index=pd.to_datetime(df[date_column].values),
        name="price",
    )
    return _apply_date_filter(series, date_filter)


def read_binance_prices(path: str, date_filter: Optional[Iterable[str]] = None) -> pd.Series:
    """
    Load a Binance kline (candle) JSON dump into a price series.

    Each candle contributes its ``close`` price at its ``closeTime``
    (milliseconds since the epoch).
    """
    if not os.path.isfile(path):
        raise FileNotFoundError(f"Price file not found: {path}")

    with open(path, "r") as f:
        candles = json.load(f)
    if not isinstance(candles, list):
        raise ValueError("Binance price file must contain a list of candles.")

    series = pd.Series(
        [str(candle["close"]) for candle in candles],
        index=pd.to_datetime([candle["closeTime"] for candle in candles], unit="ms"),
        name="price",
    )
    return _apply_date_filter(series, date_filter)
