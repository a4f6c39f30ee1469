__version__ = "1.0.0"
__build_timestamp__ = "source"
__build_type__ = "development"
