"""Example integration with chained dynamic dropdowns."""
