"""Topic segmentation, keywords, importance and summarization."""
