"""GenZoom: intent-routed chat replies backed by text, search and image backends."""
