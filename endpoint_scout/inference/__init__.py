"""Endpoint inference: sample a process's connections, vote on the server."""

from endpoint_scout.inference.engine import run_inference
from endpoint_scout.inference.sampler import sample, to_observation
from endpoint_scout.inference.selector import count_endpoints, select_dominant

__all__ = ["run_inference", "sample", "to_observation", "select_dominant", "count_endpoints"]
