"""reelcompose — manifest-driven short-form product videos.

A video is a versioned manifest (script, captions, clips, product
end-card, theme, audio). Frames are rendered deterministically from
(manifest, frame); natural-language edit commands go through the
Director, which returns a new manifest version.
"""
