"""nocdata_pipeline.utils — executor, resume, progress, retry and logging helpers."""
