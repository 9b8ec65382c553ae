"""Pipeline services: script, voice, media, composition, captions and jobs."""
