# app/config.py

from dataclasses import dataclass
from os import getenv


MAX_RECORDS_PER_UPDATE = 50
DEFAULT_SENTENCE_COUNT = 7
API_ENDPOINT = "https://api.smmry.com/"


@dataclass(frozen=True)
class PipelineConfig:
    """Fixed values the TL;DR run is built from.

    These match the example base: a `Urls` table whose `URL` field is read
    and whose `Summary` field is written.
    """
    table_name: str = "Urls"
    source_field: str = "URL"
    destination_field: str = "Summary"
    batch_size: int = MAX_RECORDS_PER_UPDATE
    sentence_count_default: int = DEFAULT_SENTENCE_COUNT
    api_endpoint: str = API_ENDPOINT
    request_timeout: float = 30.0

    def __post_init__(self):
        if self.batch_size < 1:
            raise ValueError(f"TLDR_BATCH_SIZE must be at least 1, got {self.batch_size}")
        if not 1 <= self.sentence_count_default <= 7:
            raise ValueError(
                "TLDR_SENTENCE_COUNT_DEFAULT must be between 1 and 7,"
                f" got {self.sentence_count_default}"
            )
        if self.request_timeout <= 0:
            raise ValueError(
                f"TLDR_REQUEST_TIMEOUT must be positive, got {self.request_timeout}"
            )

    @classmethod
    def from_env(cls) -> "PipelineConfig":
        return cls(
            table_name=getenv("TLDR_TABLE_NAME", "Urls"),
            source_field=getenv("TLDR_SOURCE_FIELD", "URL"),
            destination_field=getenv("TLDR_DESTINATION_FIELD", "Summary"),
            batch_size=int(getenv("TLDR_BATCH_SIZE", str(MAX_RECORDS_PER_UPDATE))),
            sentence_count_default=int(
                getenv("TLDR_SENTENCE_COUNT_DEFAULT", str(DEFAULT_SENTENCE_COUNT))
            ),
            api_endpoint=getenv("TLDR_API_ENDPOINT", API_ENDPOINT),
            request_timeout=float(getenv("TLDR_REQUEST_TIMEOUT", "30")),
        )


pipeline_config = PipelineConfig.from_env()
