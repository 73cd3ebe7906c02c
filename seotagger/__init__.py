"""SEO image metadata tagger: vision-model analysis pipeline for alt text, titles and keywords."""

__version__ = "0.1.0"
