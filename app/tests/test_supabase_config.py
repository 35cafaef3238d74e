# tests/test_supabase_config.py
from app.config.supabase import SupabaseClient, is_valid_supabase_url


def test_project_url_validation():
    assert is_valid_supabase_url("https://abcd1234.supabase.co")
    assert is_valid_supabase_url("https://abcd1234.supabase.co/")
    assert not is_valid_supabase_url("http://abcd1234.supabase.co")
    assert not is_valid_supabase_url("https://example.com")
    assert not is_valid_supabase_url(None)


def test_unconfigured_client_is_none_and_unhealthy():
    holder = SupabaseClient(url="", key="")
    assert holder.client is None
    assert holder.health_check() is False
    assert holder.diagnostics() == {"configured": False, "client_present": False, "host": None}


def test_invalid_url_is_not_used():
    holder = SupabaseClient(url="https://example.com", key="service-key")
    assert holder.client is None
    diag = holder.diagnostics()
    assert diag["configured"] is True
    assert diag["host"] == "example.com"
