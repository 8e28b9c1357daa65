from .chunk_index import ChunkVectorIndex, VectorHit, distance_to_similarity
from .faiss_index import FaissVectorIndex

__all__ = ["ChunkVectorIndex", "FaissVectorIndex", "VectorHit", "distance_to_similarity"]
