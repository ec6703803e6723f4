"""Live feed ingestion: record decoding, dispatch, archival and the session loop."""
