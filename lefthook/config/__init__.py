"""Configuration models, loading and merging, dumping and skip rules."""