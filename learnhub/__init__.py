"""LearnHub Groups - instructor groups and invitations on top of Strapi"""

__version__ = "1.0.0"
