"""Supporting utilities for plan generation."""
