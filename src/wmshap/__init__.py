"""Weighted mean SHAP aggregation across fine-tuned models and ensemble base-learners."""

__version__ = "0.1.0"
