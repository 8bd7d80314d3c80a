import pytest

from licensedetect.core.corpus import get_corpus
from licensedetect.core.mentions import BaselineMentionExtractor, make_mention_extractor


@pytest.fixture(scope="module")
def extractor() -> BaselineMentionExtractor:
    return BaselineMentionExtractor(get_corpus().vocabulary())


def test_licensed_under_phrase(extractor):
    mentions = extractor.extract("This project is licensed under the Apache License 2.0.")

    assert "Apache License 2.0" in mentions


def test_licensed_under_phrase_is_cut_at_trailing_words(extractor):
    mentions = BaselineMentionExtractor().extract("Distributed under the Boost Software License - see LICENSE for details")

    assert mentions[0] == "Boost Software License"


def test_license_label_line():
    mentions = BaselineMentionExtractor().extract("Name: demo\nLicense: BSD-3-Clause\n")

    assert mentions == ["BSD-3-Clause"]


def test_spdx_identifier():
    assert BaselineMentionExtractor().extract("SPDX-License-Identifier: MPL-2.0") == ["MPL-2.0"]


def test_named_license_phrase():
    mentions = BaselineMentionExtractor().extract("Uses the GNU General Public License, Version 3 terms.")

    assert "GNU General Public License, Version 3" in mentions


def test_vocabulary_terms_are_whole_words(extractor):
    assert "MIT" in extractor.extract("Available as MIT or ISC.")
    assert extractor.extract("We submit patches at MITRE.") == []
    assert extractor.extract("mit is lower case here") == []


def test_mentions_are_ordered_and_unique(extractor):
    mentions = extractor.extract("MIT first, then GPLv3, then MIT again.")

    assert mentions == ["MIT", "GPLv3"]


def test_factory():
    assert isinstance(make_mention_extractor("baseline", ["MIT"]), BaselineMentionExtractor)
    with pytest.raises(ValueError):
        make_mention_extractor("nope")


def test_spacy_extractor_finds_vocabulary_and_named_licenses():
    pytest.importorskip("spacy")
    ext = make_mention_extractor("spacy", ["MIT", "Apache-2.0"])

    mentions = ext.extract("Dual licensed: mit or the Artistic License 2.0.")

    assert "mit" in mentions
    assert any(m.startswith("Artistic License") for m in mentions)
