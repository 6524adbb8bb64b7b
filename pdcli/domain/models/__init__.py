"""Domain models (value objects) for requests, outcomes and result sets."""
