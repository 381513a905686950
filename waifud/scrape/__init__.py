"""Scrapers that find the latest upstream distribution cloud images."""