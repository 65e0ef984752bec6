"""
nocdata_pipeline.transforms — value normalization and record mapping.
"""
