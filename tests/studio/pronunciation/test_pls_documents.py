from __future__ import annotations

from audiobook_studio.pronunciation import build_pls, validate_pls
from audiobook_studio.pronunciation.pls import wrap_phoneme


def test_lexicon_layout_is_unindented():
    document = build_pls([("Ahab", "eɪhæb"), ("Q&A", "/kjuː ænd eɪ/"), ("Skip", "")])

    assert document.startswith('<?xml version="1.0" encoding="UTF-8"?>\n<lexicon version="1.0"\n')
    assert 'alphabet="ipa" xml:lang="en-US">\n<lexeme>\n<grapheme>Ahab</grapheme>\n' in document
    assert "<phoneme>/eɪhæb/</phoneme>\n</lexeme>\n" in document
    assert "<grapheme>Q&amp;A</grapheme>" in document
    assert "Skip" not in document
    assert document.endswith("</lexeme>\n</lexicon>")
    assert validate_pls(document) is None


def test_validation_messages():
    assert validate_pls("<lexicon/>") == "Missing XML declaration"
    assert validate_pls('<?xml version="1.0" encoding="UTF-8"?>\n<root/>') == "Missing lexicon element"


def test_wrap_phoneme():
    assert wrap_phoneme(" pɪp ") == "/pɪp/"
    assert wrap_phoneme("/pɪp") == "/pɪp/"
    assert wrap_phoneme("/pɪp/") == "/pɪp/"
