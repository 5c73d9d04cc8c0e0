"""promptstack core library (composition pipeline, templates, configuration)."""
