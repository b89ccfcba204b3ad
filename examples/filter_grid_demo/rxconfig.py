"""Reflex configuration for the filter grid demo app."""

import reflex as rx

config = rx.Config(
    app_name="filter_grid_demo",
    plugins=[rx.plugins.SitemapPlugin()],
)
