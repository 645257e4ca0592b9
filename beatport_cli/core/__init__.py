"""
Core application engine for orchestrating the download process.

The `DownloadManager` runs batches of URLs through two bounded worker pools,
fails over between the accounts of the `AccountPool`, and hands each track
to the `TrackProcessor`. The `DedupRegistry` keeps concurrent jobs from
writing the same file, and the `ShutdownCoordinator` turns interrupts into a
graceful drain.
"""
