"""
Runtime configuration for the product search service.

Everything tunable is read from the environment once at import time.
Model geometry (vector width, input size, CLIP normalization constants)
is fixed by the exported model and the stored catalog, so it lives here
as plain constants rather than environment knobs.
"""

import os

# Model geometry
EMBEDDING_DIM = 512
IMAGE_SIZE = 224
MEAN = (0.48145466, 0.4578275, 0.40821073)
STD = (0.26862954, 0.26130258, 0.27577711)

# Data files
DATA_DIR = os.environ.get("DATA_DIR", os.getcwd())
MODEL_FILE = os.environ.get("MODEL_FILE", "model.onnx")
EMBEDDINGS_FILE = os.environ.get("EMBEDDINGS_FILE", "vs-embeddings.bin")
META_FILE = os.environ.get("META_FILE", "vs-meta.json")
INDEX_PAGE_FILE = "visual-search.html"

# Large files are hosted externally and fetched on first startup
FILE_URLS = {
    MODEL_FILE: os.environ.get("MODEL_URL", ""),
    EMBEDDINGS_FILE: os.environ.get("EMBEDDINGS_URL", ""),
    META_FILE: os.environ.get("META_URL", ""),
}
DOWNLOAD_TIMEOUT = float(os.environ.get("DOWNLOAD_TIMEOUT", "300"))

# Inference
ONNX_INPUT_NAME = os.environ.get("ONNX_INPUT_NAME", "pixel_values")
ONNX_OUTPUT_NAME = os.environ.get("ONNX_OUTPUT_NAME", "image_embeds")
INFERENCE_TIMEOUT = float(os.environ.get("INFERENCE_TIMEOUT", "30"))

# Serving
PORT = int(os.environ.get("PORT", "3456"))
DEFAULT_TOP_K = int(os.environ.get("DEFAULT_TOP_K", "20"))
MAX_UPLOAD_BYTES = int(os.environ.get("MAX_UPLOAD_BYTES", "10000000"))
ALLOWED_ORIGINS = [
    o.strip() for o in os.environ.get(
        "ALLOWED_ORIGINS",
        "https://www.nigooffice.com,https://nigooffice.com,http://localhost:3456",
    ).split(",") if o.strip()
]
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
