"""HTTP surface for the livecharts engine."""
