"""Strapi REST integration"""
from learnhub.integrations.strapi.client import StrapiClient, StrapiPage
from learnhub.integrations.strapi.query import StrapiQuery

__all__ = ["StrapiClient", "StrapiPage", "StrapiQuery"]
