"""Tests for the relevance filter chain."""

import pytest
from config import FilterConfig
from filters import (
    FilterChain,
    FilterSubject,
    build_filter_chain,
    entity_of,
    match_keywords,
)


@pytest.fixture
def chain():
    return FilterChain()


class TestBypass:
    """General-news origins skip every rule."""

    def test_financial_source_rejected(self, chain):
        """Stock-focused title from a financial outlet is rejected."""
        assert chain.should_filter("google_alerts", "Stock soars after earnings", "", "Zacks") is True

    def test_bypass_origin_accepted(self, chain):
        """The same item from a general-news feed is accepted."""
        assert chain.should_filter("nyt_top_news_rss", "Stock soars after earnings", "", "Zacks") is False

    def test_bypass_is_case_insensitive(self, chain):
        """Origin case does not matter for the bypass list."""
        assert chain.should_filter("POLITICO_RSS", "Opinion: Fix the Senate", "", "") is False


class TestUniversalRules:
    """Tests for the universal content-quality rules."""

    def test_wire_boilerplate(self, chain):
        """AP earnings snapshots are rejected."""
        decision = chain.evaluate_subject(FilterSubject(origin="google_alerts", title="Acme: Q3 Earnings Snapshot"))
        assert decision.rule == "wire_boilerplate"

    def test_press_release_in_source(self, chain):
        """Press-release distributors are detected in the source field."""
        assert chain.should_filter("google_alerts", "Acme launches widget", "", "PR Newswire") is True

    def test_press_release_in_summary(self, chain):
        """Press-release markers in the summary count too."""
        assert chain.should_filter("google_alerts", "Acme launches widget",
                                   "NEW YORK, /PRNewswire/ -- Acme today...", "acme.com") is True

    def test_stock_keywords_need_financial_source(self, chain):
        """Stock keywords from a general outlet are not enough on their own."""
        assert chain.should_filter("google_alerts", "Acme expands as market cap grows", "",
                                   "reuters.com") is False

    def test_price_movement_title(self, chain):
        """A title about price movement is rejected from any source."""
        assert chain.should_filter("google_alerts", "Why Acme stock down today", "", "cnn.com") is True

    def test_crypto_keywords(self, chain):
        """Crypto trading talk is rejected."""
        assert chain.should_filter("google_alerts", "Bitcoin rallies past record", "", "cnn.com") is True

    def test_crypto_word_boundaries(self, chain):
        """Short crypto tokens do not match inside other words."""
        assert chain.should_filter("google_alerts", "New method for teeth whitening studied",
                                   "", "health.example") is False

    @pytest.mark.parametrize("title,link", [
        ("Opinion: The court got it wrong", "https://news.example/a"),
        ("The court got it wrong", "https://news.example/opinion/court"),
        ("Why we must rethink antitrust", "https://news.example/a"),
    ])
    def test_opinion(self, chain, title, link):
        """Opinion markers in title or URL path are rejected."""
        assert chain.should_filter("google_alerts", title, "", "news.example", link) is True

    def test_opinion_byline_in_summary(self, chain):
        """Guest-essay bylines in the summary are rejected."""
        assert chain.should_filter("google_alerts", "On regulation", "A guest essay by a professor",
                                   "news.example") is True

    def test_shopping_keywords(self, chain):
        """Promotional copy is rejected."""
        assert chain.should_filter("google_alerts", "Use this promo code for boots", "", "shop.example") is True

    def test_price_in_title(self, chain):
        """A currency amount in the title is rejected."""
        assert chain.should_filter("google_alerts", "Sneakers now $19.99", "", "shop.example") is True

    def test_local_crime(self, chain):
        """Local crime with no policy angle is rejected."""
        assert chain.should_filter("google_alerts", "Man arrested for robbery downtown", "",
                                   "local.example") is True

    def test_local_crime_with_policy_angle(self, chain):
        """A political keyword keeps crime coverage."""
        assert chain.should_filter("google_alerts", "Man arrested for robbery; FBI opens federal probe",
                                   "", "local.example") is False

    def test_blocked_domain(self):
        """Blocked domains, including subdomains, are rejected when enabled."""
        chain = build_filter_chain(FilterConfig())
        assert chain.should_filter("google_alerts", "Acme hires CFO", "", "",
                                   "https://finance.yahoo.com/news/acme") is True
        assert chain.should_filter("google_alerts", "Acme hires CFO", "", "",
                                   "https://reuters.com/acme") is False

    def test_toggles_disable_rules(self):
        """Shopping and local-crime rules can be switched off."""
        config = FilterConfig(enable_shopping_filter=False, enable_local_crime_filter=False,
                              enable_blocked_domains=False)
        chain = build_filter_chain(config)
        assert chain.should_filter("google_alerts", "Sneakers now $19.99", "", "shop.example") is False
        assert chain.should_filter("google_alerts", "Man arrested for robbery downtown", "",
                                   "local.example") is False

    def test_ordinary_news_accepted(self, chain):
        """Plain corporate news passes."""
        assert chain.should_filter("google_alerts", "Acme names new chief executive",
                                   "The board appointed...", "reuters.com",
                                   "https://reuters.com/acme") is False


class TestEntityOverrides:
    """Tests for per-entity override rules."""

    def test_delta_incident(self, chain):
        """Delta incident coverage is rejected."""
        assert chain.should_filter("delta_air_lines_rss", "Delta flight diverted to Denver") is True

    def test_delta_route(self, chain):
        """Delta route announcements are rejected."""
        assert chain.should_filter("delta_air_lines", "Delta adds service to Lisbon") is True

    def test_delta_rule_scoped_to_entity(self, chain):
        """Other origins are not subject to Delta rules."""
        assert chain.should_filter("google_alerts", "Flight diverted to Denver") is False

    def test_tiktok_influencer(self, chain):
        """TikTok creator content is rejected."""
        assert chain.should_filter("tiktok_rss", "TikTok star launches makeup line") is True

    def test_tiktok_keeps_governance(self, chain):
        """Regulatory TikTok coverage is kept."""
        assert chain.should_filter("tiktok_rss", "Senate weighs TikTok ban as ByteDance talks stall") is False

    def test_tiktok_rejects_non_substantive(self, chain):
        """TikTok coverage without a corporate angle is rejected."""
        assert chain.should_filter("tiktok_rss", "Five recipes everyone is making") is True

    def test_soccer_international(self, chain):
        """International soccer false positives are rejected."""
        assert chain.should_filter("us_soccer_foundation_rss", "Premier League title race heats up") is True

    def test_soccer_routine_vs_governance(self, chain):
        """Match coverage is rejected unless it has a governance angle."""
        assert chain.should_filter("cindy_parlow_cone_rss", "Match recap: late goal in Portland") is True
        assert chain.should_filter("cindy_parlow_cone_rss",
                                   "Parlow Cone speaks on equal pay after match recap") is False

    def test_stubhub_ticket_guide(self, chain):
        """Ticket buying guides are rejected."""
        assert chain.should_filter("stubhub_rss", "How to get tickets for the Eras tour") is True

    def test_stubhub_event_vs_business(self, chain):
        """Event coverage is rejected unless it is about the marketplace."""
        assert chain.should_filter("stubhub_rss", "Concert review: a night to remember") is True
        assert chain.should_filter("stubhub_rss", "StubHub faces scrutiny over fees after concert review") is False

    def test_google_minor_update(self, chain):
        """Minor Google product updates are rejected unless major news."""
        assert chain.should_filter("google_rss", "Gmail adds new emoji reactions") is True
        assert chain.should_filter("google_rss", "Gmail update draws FTC privacy complaint") is False

    def test_waymo(self, chain):
        """Waymo minor incidents and reviews are rejected; regulatory news is kept."""
        assert chain.should_filter("waymo_rss", "Waymo car confused by traffic cone") is True
        assert chain.should_filter("waymo_rss", "We rode in a Waymo: impressions") is True
        assert chain.should_filter("waymo_rss", "Waymo gets CPUC permit, first ride impressions") is False

    def test_albemarle_geographic(self, chain):
        """Place-name hits for Albemarle are rejected."""
        assert chain.should_filter("albemarle_rss", "Albemarle County school board meets Tuesday") is True

    def test_albemarle_requires_business_context(self, chain):
        """Albemarle coverage must carry a business keyword."""
        assert chain.should_filter("albemarle_rss", "Albemarle opens lithium plant in Nevada") is False
        assert chain.should_filter("albemarle_rss", "Albemarle wins community award") is True

    def test_coinbase_exempt_from_stock_rule(self, chain):
        """Crypto coverage is in scope for Coinbase."""
        assert chain.should_filter("coinbase_rss", "Coinbase volume jumps as bitcoin rallies") is False
        assert chain.should_filter("google_alerts", "Coinbase volume jumps as bitcoin rallies") is True

    def test_coinbase_still_gets_other_rules(self, chain):
        """The exemption covers only the stock-price rule."""
        assert chain.should_filter("coinbase_rss", "Opinion: Coinbase should slow down") is True


class TestRequiredKeywords:
    """Tests for configured required-keyword overrides."""

    @pytest.fixture
    def chain(self):
        config = FilterConfig(required_keywords={
            "newsletter": ["ai", "machine learning", "lexis+ ai"],
            "congress": ["china", "chinese"],
        })
        return build_filter_chain(config)

    def test_newsletter_needs_ai_keyword(self, chain):
        """Newsletter items without an AI keyword are rejected."""
        assert chain.should_filter("newsletter", "Firm opens Denver office") is True
        assert chain.should_filter("newsletter", "Firm rolls out AI drafting tool") is False

    def test_word_boundary_avoids_false_positive(self, chain):
        """'ai' does not match inside 'China' or 'maintain'."""
        assert chain.should_filter("newsletter", "China trade talks maintain pace") is True

    def test_congress_requires_china(self, chain):
        """Bills must mention China."""
        assert chain.should_filter("congress", "HR1: Farm bill") is True
        assert chain.should_filter("congress", "S12: Countering Chinese influence act") is False


class TestHelpers:
    """Tests for matching helpers."""

    def test_match_keywords(self):
        """Word-boundary matching, case-insensitive."""
        assert match_keywords("New AI rules", ["ai", "llm"]) == ["ai"]
        assert match_keywords("Maintain", ["ai"]) == []

    def test_entity_of(self):
        """Origins map to override keys."""
        assert entity_of("Delta_Air_Lines_RSS") == "delta_air_lines"
        assert entity_of("us_soccer_foundation_rss") == "us_soccer"
        assert entity_of("google_alerts") == "google_alerts"

    def test_evaluate_candidate(self, chain, make_candidate):
        """evaluate() reports the rejecting rule and reason."""
        decision = chain.evaluate(make_candidate(title="Opinion: Acme is overrated"))
        assert decision.rejected
        assert decision.rule == "opinion"
        assert decision.reason
