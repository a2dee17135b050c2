"""Fetch collaborators."""

from seisview.core.client.dataselect import DATASELECT_PATH, DataselectClient, build_query_params

__all__ = ["DATASELECT_PATH", "DataselectClient", "build_query_params"]
