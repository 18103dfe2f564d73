# api/config.py
"""Configuration management for the trip composer API."""
import os
from dotenv import load_dotenv

load_dotenv()


def get_openai_api_key():
    """Get OpenAI API key from environment."""
    api_key = os.getenv("OPENAI_API_KEY")
    if not api_key:
        raise ValueError("OPENAI_API_KEY not set")
    return api_key


def get_generation_config():
    """Get text-generation configuration."""
    return {
        "model": os.getenv("OPENAI_CHAT_MODEL", "gpt-4.1"),
        "temperature": float(os.getenv("OPENAI_TEMPERATURE", "0.7")),
        "max_tokens": int(os.getenv("OPENAI_MAX_TOKENS", "2048")),
        "timeout_seconds": float(os.getenv("GENERATION_TIMEOUT_SECONDS", "30")),
    }


def get_google_maps_config():
    """Get Google Maps configuration."""
    return {
        "api_key": os.getenv("GOOGLE_MAPS_API_KEY", ""),
        "client_id": os.getenv("maps_client_id", ""),
        "client_secret": os.getenv("maps_client_secret", "")
    }


def get_routing_config():
    """Get Directions fan-out configuration."""
    return {
        "timeout_seconds": float(os.getenv("ROUTING_TIMEOUT_SECONDS", "10")),
        "max_workers": int(os.getenv("ROUTING_MAX_WORKERS", "5")),
    }


def get_image_lookup_config():
    """Get Unsplash configuration."""
    return {
        "access_key": os.getenv("UNSPLASH_ACCESS_KEY", ""),
        "api_base": os.getenv("UNSPLASH_API_BASE", "https://api.unsplash.com"),
        "timeout_seconds": float(os.getenv("IMAGE_LOOKUP_TIMEOUT_SECONDS", "5")),
        "max_workers": int(os.getenv("IMAGE_LOOKUP_MAX_WORKERS", "5")),
    }


def get_session_config():
    """Get planner session configuration."""
    return {
        "session_timeout_seconds": int(os.getenv("PLANNER_SESSION_TIMEOUT_SECONDS", "3600")),
        "cleanup_interval_seconds": int(os.getenv("PLANNER_CLEANUP_INTERVAL_SECONDS", "30")),
        "max_sessions": int(os.getenv("MAX_PLANNER_SESSIONS", "500")),
    }


def get_port():
    """Get port configuration."""
    return int(os.getenv("PORT", 5000))


def get_cors_origins():
    """Get allowed CORS origins."""
    origins = os.getenv("CORS_ORIGINS", "*")
    if origins == "*":
        return "*"
    return [o.strip() for o in origins.split(",") if o.strip()]
