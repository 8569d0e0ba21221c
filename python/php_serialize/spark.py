"""
PySpark UDF helpers for PHP serialization.

This module provides ready-to-use UDFs for converting PHP serialized columns
in PySpark DataFrames, in both directions.

Example:
    >>> from php_serialize.spark import php_deserialize_udf, php_serialize_udf
    >>> deserialize = php_deserialize_udf("json")
    >>> df = df.withColumn("parsed", deserialize("serialized_col"))
    >>> df = df.withColumn("php", php_serialize_udf()("json_col"))
"""

import logging
from typing import TYPE_CHECKING, Callable, Literal, Optional, Union

from php_serialize._core import loads, render_json
from php_serialize._errors import PhpSerializeError
from php_serialize.convert import json_to_php
from php_serialize.literal import dump_literal

if TYPE_CHECKING:
    from pyspark.sql import Column, SparkSession

logger = logging.getLogger(__name__)

# Lazy imports to avoid requiring PySpark at import time
_pyspark_available: Optional[bool] = None


def _check_pyspark() -> None:
    """Check if PySpark is available."""
    global _pyspark_available
    if _pyspark_available is None:
        try:
            import pyspark  # noqa: F401
            _pyspark_available = True
        except ImportError:
            _pyspark_available = False

    if not _pyspark_available:
        raise ImportError(
            "PySpark is required for spark module. "
            "Install with: pip install php-serialize[spark]"
        )


def deserialize_value(
    data: Optional[Union[bytes, str]],
    output_format: Literal["json", "literal"] = "json",
    auto_unescape: bool = True,
    strict: bool = True,
) -> Optional[str]:
    """Convert one serialized cell; ``None`` for nulls and unparsable rows."""
    if data is None:
        return None
    try:
        value = loads(data, auto_unescape=auto_unescape, strict=strict)
        if output_format == "literal":
            return dump_literal(value)
        return render_json(value)
    except PhpSerializeError as exc:
        logger.debug("Skipping row that failed to deserialize: %s", exc)
        return None


def serialize_value(data: Optional[str]) -> Optional[str]:
    """Convert one JSON cell to PHP serialized text; ``None`` on failure."""
    if data is None:
        return None
    try:
        return json_to_php(data)
    except PhpSerializeError as exc:
        logger.debug("Skipping row that failed to serialize: %s", exc)
        return None


def php_deserialize_udf(
    output_format: Literal["json", "literal"] = "json",
    auto_unescape: bool = True,
    strict: bool = True,
) -> Callable[["Column"], "Column"]:
    """
    Create a PySpark UDF for deserializing PHP serialized data.

    Args:
        output_format: Output format
            - "json": Return JSON string (recommended for Spark)
            - "literal": Return PHP array literal syntax
        auto_unescape: Automatically handle DB-escaped strings
        strict: Reject strings whose declared length is wrong

    Returns:
        A UDF function that can be applied to DataFrame columns

    Example:
        >>> from php_serialize.spark import php_deserialize_udf
        >>> from pyspark.sql import functions as F
        >>>
        >>> deserialize = php_deserialize_udf("json")
        >>> df = df.withColumn("parsed", deserialize(F.col("php_data")))
        >>>
        >>> # Or with schema inference
        >>> from pyspark.sql.functions import from_json, schema_of_json
        >>> sample_json = '{"name":"Alice","age":30}'
        >>> schema = schema_of_json(sample_json)
        >>> df = df.withColumn("parsed", from_json(deserialize("php_data"), schema))
    """
    if output_format not in ("json", "literal"):
        raise ValueError(f"output_format must be 'json' or 'literal', got {output_format!r}")
    _check_pyspark()

    from pyspark.sql.functions import udf
    from pyspark.sql.types import StringType

    @udf(returnType=StringType())
    def _deserialize(data: Optional[Union[bytes, str]]) -> Optional[str]:
        return deserialize_value(data, output_format, auto_unescape, strict)

    return _deserialize


def php_serialize_udf() -> Callable[["Column"], "Column"]:
    """
    Create a PySpark UDF that turns JSON strings into PHP serialized strings.

    JSON objects with a ``"__class"`` member become PHP objects.

    Example:
        >>> from php_serialize.spark import php_serialize_udf
        >>> df = df.withColumn("php_data", php_serialize_udf()("json_data"))
    """
    _check_pyspark()

    from pyspark.sql.functions import udf
    from pyspark.sql.types import StringType

    @udf(returnType=StringType())
    def _serialize(data: Optional[str]) -> Optional[str]:
        return serialize_value(data)

    return _serialize


def php_deserialize_pandas_udf(
    auto_unescape: bool = True,
    strict: bool = True,
) -> Callable:
    """
    Create a Pandas UDF for batch PHP deserialization to JSON.

    This is more efficient than the regular UDF for large datasets
    as it processes data in batches.

    Args:
        auto_unescape: Automatically handle DB-escaped strings
        strict: Reject strings whose declared length is wrong

    Returns:
        A Pandas UDF function

    Example:
        >>> from php_serialize.spark import php_deserialize_pandas_udf
        >>> deserialize = php_deserialize_pandas_udf()
        >>> df = df.withColumn("parsed", deserialize("php_data"))
    """
    _check_pyspark()

    from pyspark.sql.functions import pandas_udf
    from pyspark.sql.types import StringType

    import pandas as pd

    @pandas_udf(StringType())
    def _deserialize_batch(series: pd.Series) -> pd.Series:
        def convert(data: Optional[Union[bytes, str, float]]) -> Optional[str]:
            if isinstance(data, float) and pd.isna(data):
                return None
            return deserialize_value(data, "json", auto_unescape, strict)

        return series.apply(convert)

    return _deserialize_batch


def register_udfs(spark: "SparkSession", prefix: str = "php_") -> None:
    """
    Register PHP serialization UDFs with a Spark session.

    Registers ``<prefix>deserialize`` (serialized -> JSON) and
    ``<prefix>serialize`` (JSON -> serialized).

    Args:
        spark: SparkSession instance
        prefix: Prefix for UDF names (default: "php_")

    Example:
        >>> from pyspark.sql import SparkSession
        >>> from php_serialize.spark import register_udfs
        >>>
        >>> spark = SparkSession.builder.getOrCreate()
        >>> register_udfs(spark)
        >>>
        >>> # Now use in SQL
        >>> spark.sql("SELECT php_deserialize(data), php_serialize(payload) FROM table")
    """
    _check_pyspark()

    from pyspark.sql.types import StringType

    spark.udf.register(f"{prefix}deserialize", deserialize_value, StringType())
    spark.udf.register(f"{prefix}serialize", serialize_value, StringType())
