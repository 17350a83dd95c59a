"""Business logic: text splitting, ingestion, document management and chat."""
