"""Trackboard core: filtering, codecs, timelines, tags, analytics and insights."""
