from src.lifecycle.domain.services.snowflake import (
    SnowflakeGenerator,
    decode_datetime,
    decode_sequence,
    decode_timestamp,
    decode_worker_identity,
)

__all__ = [
    "SnowflakeGenerator",
    "decode_datetime",
    "decode_sequence",
    "decode_timestamp",
    "decode_worker_identity",
]
