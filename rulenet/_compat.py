from __future__ import annotations

from typing import TYPE_CHECKING, Any, Union

if TYPE_CHECKING:
    import pandas as pd
    import polars as pl
    import pyarrow as pa

    #: Union of the tabular input types accepted by the transaction loaders:
    #:
    #: * ``pandas.DataFrame`` – including sparse-backed frames
    #: * ``polars.DataFrame`` – converted through ``to_pandas()``
    #: * ``pyarrow.Table`` – converted through ``to_pandas()``
    DataFrame = Union[pd.DataFrame, pl.DataFrame, pa.Table]  # noqa: UP007


def _module_of(data: Any) -> str:
    return getattr(type(data), "__module__", "") or ""


def is_polars_frame(data: Any) -> bool:
    return type(data).__name__ == "DataFrame" and _module_of(data).startswith("polars")


def is_arrow_table(data: Any) -> bool:
    return type(data).__name__ == "Table" and _module_of(data).startswith("pyarrow")


def to_pandas(data: Any) -> Any:
    """Coerce Polars/PyArrow inputs to a pandas DataFrame; return everything else unchanged."""
    if is_arrow_table(data) or is_polars_frame(data):
        return data.to_pandas()
    return data
