from seo_checker.services import page_parser
from seo_checker.services.rule_registry import RuleInputs


def soup(html):
    return page_parser.parse_html(html)


class TestPageParser:
    def test_title_missing_is_none(self):
        assert page_parser.extract_title(soup("<html><head></head></html>")) is None

    def test_meta_matches_name_or_property(self):
        doc = soup('<meta property="og:title" content="OG"><meta NAME="Description" content=" Desc ">')
        assert page_parser.extract_meta_content(doc, "og:title") == "OG"
        assert page_parser.extract_meta_content(doc, "description") == "Desc"
        assert page_parser.extract_meta_content(doc, "keywords") is None

    def test_robots_none_implies_noindex_nofollow(self):
        doc = soup('<meta name="robots" content="NONE, noarchive">')
        assert page_parser.extract_robots_directives(doc) == {"none", "noindex", "nofollow", "noarchive"}

    def test_canonical_and_hreflang(self):
        doc = soup(
            '<link rel="canonical" href="/home">'
            '<link rel="alternate" hreflang="en" href="/en">'
            '<link rel="alternate" hreflang="de" href="/de">'
            '<link rel="alternate" type="application/rss+xml" href="/feed">'
        )
        assert page_parser.extract_canonical(doc) == "/home"
        assert page_parser.extract_hreflangs(doc) == ["en", "de"]

    def test_jsonld_blocks_in_document_order(self):
        doc = soup(
            '<script type="application/ld+json">{"a": 1}</script>'
            '<script>var x = 1;</script>'
            '<script type="application/ld+json">{"b": 2}</script>'
        )
        assert page_parser.extract_jsonld_blocks(doc) == ['{"a": 1}', '{"b": 2}']

    def test_insecure_elements(self):
        doc = soup(
            '<img src="http://cdn.example/a.png">'
            '<script src="https://cdn.example/app.js"></script>'
            '<link rel="stylesheet" href="http://cdn.example/s.css">'
        )
        assert page_parser.extract_insecure_elements(doc) == [
            "<img> http://cdn.example/a.png",
            "<link> http://cdn.example/s.css",
        ]

    def test_word_count_skips_scripts_and_comments(self):
        doc = soup(
            "<body><p>one two three</p><!-- hidden words here -->"
            "<script>var a = 'no count';</script><style>p {}</style><div>four</div></body>"
        )
        assert page_parser.count_words(doc) == 4

    def test_html_lang(self):
        assert page_parser.extract_html_lang(soup('<html lang="fr"><body></body></html>')) == "fr"
        assert page_parser.extract_html_lang(soup("<html><body></body></html>")) is None


class TestRuleInputs:
    def test_slices_resolve_from_canned_page(self, make_snapshot, healthy_aux):
        inputs = RuleInputs(make_snapshot(), healthy_aux)
        assert inputs.title == "Example Domain Guide to Technical SEO Testing"
        assert inputs.h1_texts == ["Technical SEO Testing"]
        assert inputs.meta_description is None
        assert inputs.html_lang == "en"
        assert inputs.word_count > 300
        assert inputs.robots is healthy_aux.robots

    def test_title_falls_back_to_snapshot(self, make_snapshot, healthy_aux):
        snapshot = make_snapshot(html="<html><body></body></html>", title="From Browser")
        assert RuleInputs(snapshot, healthy_aux).title == "From Browser"

    def test_slice_names_include_page_and_aux_data(self):
        names = RuleInputs.slice_names()
        assert {"title", "viewport", "robots", "link_checks", "unavailable"} <= names
