"""
clip_search: Image-to-catalog product search with CLIP embeddings.

Matches a user photo against a product catalog by comparing CLIP image
embeddings. The catalog ships as a JSON metadata file plus a blob of
half-precision vectors; queries are embedded with an ONNX export of the
CLIP vision model and ranked by exact cosine similarity.

Modules:
    engine          Main SearchEngine class
    half_float      Half-precision blob decoding
    store           Read-only EmbeddingStore
    preprocessing   Image decoding, cover-fit resize, CLIP normalization
    inference       Inference adapter boundary + ONNX Runtime adapter
    similarity      Exact top-K cosine search
    scoring         Score conversion and deterministic ranking
    index_builder   Catalog file construction
    provisioning    Startup download of data files
    server          FastAPI serving layer
"""

__version__ = "1.0.0"
