"""Configuration management for the Earthie companion backend."""
import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# API Keys
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")
SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_KEY = os.getenv("SUPABASE_KEY")

# Server Configuration
PORT = int(os.getenv("PORT", "8000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = os.getenv("LOG_FORMAT", "json")  # "json" or "text"

# CORS Configuration
CORS_ORIGINS = os.getenv(
    "CORS_ORIGINS",
    "http://localhost:3000,http://localhost:3001"
).split(",")

# Knowledge cache (relative paths resolve against the working directory)
KNOWLEDGE_CACHE_PATH = os.getenv("KNOWLEDGE_CACHE_PATH", "knowledge_cache.json")
KNOWLEDGE_DIR = os.getenv("KNOWLEDGE_DIR", "knowledge")

# Model Configuration
EMBEDDING_MODEL = "text-embedding-004"
CHAT_MODEL = "gemini-2.0-flash"
TEXT_SERVICES_MODEL = "gemini-2.0-flash-lite"

# Timeouts (seconds)
EMBEDDING_TIMEOUT = float(os.getenv("EMBEDDING_TIMEOUT", "30"))
GENERATION_TIMEOUT = float(os.getenv("GENERATION_TIMEOUT", "60"))

# Chunking Configuration (characters)
CHUNK_SIZE = 8000
CHUNK_OVERLAP = 500

# Retrieval Configuration
TOP_K = 5
FILENAME_BOOST = 1.1
MIN_RETRIEVAL_WORDS = 5
