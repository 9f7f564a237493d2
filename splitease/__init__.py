"""SplitEase server package: Flask API, persistence and external integrations."""
