"""ankipix package.

Turns selected note text into Anki flashcards illustrated with images from
public image search APIs:
- keywords: heuristic search term extraction
- image_search: Pixabay/Bing search with quality filtering
- anki_sync: AnkiConnect client
- workflow: the interactive select-then-create workflow
"""
