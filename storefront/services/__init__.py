"""Supabase-backed services: models, repositories, domains, money helpers."""
