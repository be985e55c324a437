"""
Code wiki: per-project index of knowledge citations on source elements.

Scanner and cache are deterministic and offline; the vector tier of the
matcher is optional and only active when an embedder is configured.
"""
