"""Aggregation of all context sources into one model payload."""

from umbra.context.builder import AggregatedContext, ContextBuilder, render_summary

__all__ = ["AggregatedContext", "ContextBuilder", "render_summary"]
