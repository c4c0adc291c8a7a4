"""HTTP service around the scrape engine: runs searches and stores their reports."""
