#!/usr/bin/env python3
"""
Relevance filter chain for candidate mentions.

Rules are plain predicates over a FilterSubject. The chain runs the
universal content-quality rules first, then the override rules registered
for the candidate's entity. Origins on the general-news allow-list skip the
chain entirely.

Matching is literal: lowercase substring for multi-word phrases, word
boundary regex where a short token would otherwise match inside words.
"""

import re
import sys
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Set

from canonical import host_of, normalize_host

# General/top news feeds: editorial policy is "no filtering"
BYPASS_ORIGINS = {
    'nyt_top_news_rss',
    'wapo_national_news_rss',
    'wapo_politics_rss',
    'politico_rss',
}

# Syndicated wire boilerplate (case-sensitive title markers)
WIRE_TITLE_MARKERS = ['Earnings Snapshot']

PRESS_RELEASE_KEYWORDS = [
    'prnewswire', 'pr newswire', 'business wire', 'businesswire',
    'pr web', 'prweb', 'globenewswire', 'globe newswire',
    'accesswire', 'press release', 'news release',
]

STOCK_KEYWORDS = [
    'stock price', 'share price', 'stock soars', 'stock plunges', 'stock drops',
    'stock rises', 'shares surge', 'shares fall', 'shares drop', 'shares gain',
    'trading at', 'market cap', 'stock hits', 'price target', 'analyst rating',
    'buy rating', 'sell rating', 'earnings per share', 'eps of', 'stock ticker',
    'nasdaq:', 'nyse:', 'up/down today', 'percentage gain', 'percentage loss',
    'stock watch', 'market watch', 'pre-market', 'after-hours trading',
]

CRYPTO_KEYWORDS = [
    'bitcoin', 'btc', 'ethereum', 'eth', 'crypto', 'cryptocurrency',
    'dogecoin', 'doge', 'ripple', 'xrp', 'litecoin', 'ltc',
    'blockchain price', 'altcoin', 'token price', 'crypto market',
    'crypto price', 'crypto trading', 'digital currency', 'digital asset',
    'coinbase', 'binance', 'crypto exchange', 'nft price',
    'crypto soars', 'crypto plunges', 'crypto drops', 'crypto rises',
    'crypto surge', 'crypto falls', 'crypto hits', 'crypto rallies',
    'bitcoin hits', 'ethereum hits', 'token hits',
]

FINANCIAL_SOURCES = [
    'morningstar', 'seekingalpha', 'marketwatch', 'barrons', 'investopedia',
    'motley fool', 'zacks', 'tipranks', 'gurufocus',
]

STOCK_TITLE_PHRASES = [
    'stock up', 'stock down', 'shares up', 'shares down', 'gains on', 'drops on',
    'stock cheap', 'stock expensive', 'stock performs', 'stock performance',
    'stock move', 'stock climbs', 'stock falls', 'stock outlook',
    'stock forecast', 'stock analysis', 'stock valuation',
]

OPINION_TITLE_MARKERS = [
    'opinion:', 'op-ed:', 'commentary:', 'editorial:', 'column:', 'guest column',
    'my view:', 'viewpoint:', 'perspective:', 'letter to', 'letters:',
    'i believe', 'in my opinion', 'we need to', "it's time to",
    'why we should', 'why we must',
]

OPINION_URL_PATTERNS = [
    '/opinion/', '/commentary/', '/op-ed/', '/editorial/', '/columns/',
    '/viewpoint/', '/perspective/',
]

OPINION_BYLINES = ['guest essay', 'guest commentary', 'opinion by', 'editorial board']

LOCAL_CRIME_KEYWORDS = [
    'arrested for robbery', 'arrested for burglary', 'arrested for theft',
    'arrested for assault', 'arrested for murder', 'stabbing victim',
    'shooting victim', 'robbery suspect', 'burglary suspect',
]

POLITICAL_KEYWORDS = [
    'congress', 'congressional', 'investigation', 'federal', 'policy',
    'lawsuit', 'senate', 'house', 'department of justice', 'fbi',
    'regulatory', 'regulation', 'government', 'administration',
]

SHOPPING_KEYWORDS = [
    'shoes on sale', 'on sale for', 'buy now and save', 'limited time offer',
    'shop the collection', 'shop now', 'save up to', 'discount code',
    'promo code', 'coupon code', 'free shipping', 'best deals', 'price drop',
]

PRICE_PATTERN = re.compile(r'\$\d+(\.\d{2})?')

# Made-for-advertising and reposter domains
BLOCKED_DOMAINS = [
    'themarketsdaily.com', 'baseballnewssource.com', 'tickerreport.com',
    'transcriptdaily.com', 'fox13memphis.com', 'kxii.com', 'whas11.com',
    'mynews13.com', 'wfmj.com', 'mercedsunstar.com', 'myheraldreview.com',
    'yahoo.com', 'msn.com', 'aol.com',
    'seekingalpha.com', 'marketscreener.com', 'tipranks.com', 'sherwood.news',
    'thefly.com', 'investing.com', 'benzinga.com', 'zacks.com', 'gurufocus.com',
    'newsbreak.com', 'omnilert.com', 'refreshmiami.com',
    'appliedclinicaltrialsonline.com', 'morningstar.com', 'sharesmagazine.co.uk',
    'citizenportal.ai', 'securityonline.info', 'digestwire.com', 'okenergytoday.com',
    'wabe.org', 'wrdw.com', 'gpb.org', '10tv.com', 'seattlepi.com',
    'autoblog.com', 'simpleflying.com', 'thetravel.com',
    'k12dive.com', 'medtechdive.com', 'highereddive.com',
    'itbrief.com.au', 'itbrief.asia', 'itbrief.co.uk', 'securitybrief.com.au',
    'travelandtourworld.com', 'caintravel.com',
    'kmvt.com', 'knoxradio.com', 'customerexperiencedive.com',
]

# ---- entity keyword tables ----

DELTA_INCIDENT_KEYWORDS = [
    'incident', 'crash', 'emergency', 'accident', 'diverted', 'grounded',
    'delayed', 'cancellation', 'mechanical issue', 'safety concern',
    'investigation', 'turbulence', 'forced landing', 'engine failure',
    'medical emergency', 'unruly passenger',
]

DELTA_ROUTE_KEYWORDS = [
    'new route', 'adds service', 'launches flight', 'new destination',
    'expands service', 'adds flight', 'inaugural flight', 'direct flight to',
    'nonstop service', 'new nonstop', 'announces service', 'begins service',
    'new service to', 'daily flights to', 'seasonal flights',
    'expanding service', 'adding service', 'route expansion', 'flight schedule',
    'begins flying', 'starts flying', 'will fly to', 'flying to',
]

TIKTOK_INFLUENCER_KEYWORDS = [
    'tiktok trend', 'viral tiktok', 'tiktok challenge', 'tiktok star',
    'tiktok influencer', 'tiktok creator', 'tiktok video shows', 'tiktok users are',
    'on tiktok', 'tiktok sensation', 'tiktok famous', 'tiktok personality',
    'went viral', 'trending on tiktok',
]

TIKTOK_SUBSTANTIVE_KEYWORDS = [
    'ban', 'regulation', 'lawsuit', 'congress', 'data privacy', 'security',
    'bytedance', 'acquisition', 'policy',
]

SOCCER_INTERNATIONAL_KEYWORDS = [
    'canada soccer', 'canadian soccer', 'mexico soccer', 'mexican soccer',
    'fifa', 'uefa', 'premier league', 'la liga', 'bundesliga', 'serie a',
    'champions league', 'europa league', 'world cup qualifier',
    'england national team', 'spain national team', 'france national team',
    'germany national team', 'brazil national team', 'argentina national team',
]

SOCCER_MATCH_KEYWORDS = [
    'game preview', 'match preview', 'game recap', 'match recap',
    'starting lineup', 'injury report', 'game day', 'matchup',
    'vs.', 'vs ', ' v ', ' @ ',
    'score', 'final score', 'box score', 'postgame', 'pregame',
    'wins', 'loses', 'defeats', 'beats', 'ties',
    'goal in', 'goals in', 'hat trick', 'penalty kick',
    'nwsl standings', 'mls standings', 'table',
    'playoff bracket', 'playoff preview',
]

SOCCER_TRANSFER_KEYWORDS = [
    'signs with', 'transferred to', 'joins club', 'loan deal',
    'transfer window', 'free agent signing', 'contract extension',
    're-signs with', 'waived by', 'traded to', 'acquired by',
]

SOCCER_GOVERNANCE_KEYWORDS = [
    'us soccer foundation', 'ussf', 'board of directors', 'president',
    'executive', 'leadership', 'governance', 'policy', 'lawsuit',
    'investigation', 'controversy', 'congress', 'regulatory',
    'equal pay', 'labor dispute', 'cba', 'collective bargaining',
    'cindy parlow cone', 'parlow cone',
]

STUBHUB_TICKET_GUIDE_KEYWORDS = [
    'how to get tickets', 'how to buy', 'where to buy tickets', 'ticket prices for',
    'cheapest tickets', 'ticket deals', 'get tickets to',
]

STUBHUB_EVENT_KEYWORDS = [
    'game preview', 'game recap', 'match preview', 'match recap',
    'starting lineup', 'injury report', 'game day', 'matchup',
    'vs.', 'vs ', ' v ', ' @ ',
    'score', 'final score', 'box score', 'play-by-play',
    'postgame', 'pregame', 'halftime', 'overtime',
    'wins', 'loses', 'defeats', 'beats',
    'touchdown', 'home run', 'goal', 'basket',
    'playoff', 'championship game', 'world series', 'super bowl',
    'nba game', 'nfl game', 'mlb game', 'nhl game', 'mls game',
    'concert review', 'concert recap', 'setlist',
    'performs at', 'performed at', 'performance at',
    'takes the stage', 'opening act', 'headliner',
    'tour stops', 'tour date', 'concert venue',
    'live performance', 'live show', 'sold out show',
    'encore', 'acoustic set',
    'event recap', 'event review', 'event highlights',
    'what happened at', 'photos from', 'watch highlights',
]

STUBHUB_BUSINESS_KEYWORDS = [
    'stubhub', 'fees', 'pricing', 'service charge', 'platform',
    'marketplace', 'resale', 'secondary market', 'ticket sales',
    'ticket platform', 'ticket marketplace', 'dynamic pricing',
    'all-in pricing', 'transparency', 'price guarantee',
    'ticket protection', 'fanprotect', 'customer service',
    'refund policy', 'ticket delivery', 'mobile tickets',
    'stubhub ceo', 'stubhub lawsuit', 'stubhub settlement',
    'stubhub acquisition', 'stubhub merger', 'stubhub revenue',
]

GOOGLE_CONSUMER_REVIEW_KEYWORDS = [
    'pixel review', 'pixel phone review', 'nest review', 'chromecast review',
    'google home review', 'fitbit review', 'pixel watch review',
    'pixel buds review', 'pixelbook review', 'stadia review',
    'review:', 'hands-on:', 'unboxing', 'first look:',
    'best pixel cases', 'best pixel accessories', 'tips and tricks',
]

GOOGLE_MINOR_UPDATE_KEYWORDS = [
    'google maps adds', 'google maps update', 'new google maps feature',
    'gmail adds', 'gmail update', 'new gmail feature',
    'google photos adds', 'google photos update',
    'google drive adds', 'google drive update',
    'chrome adds', 'chrome update', 'new chrome feature',
    'google search adds', 'google search now lets',
    'google app update', 'google play store update',
    'android update available', 'new emoji', 'new stickers',
    'google doodle', 'shopping tab', 'inspirational images tab',
]

GOOGLE_MAJOR_NEWS_KEYWORDS = [
    'antitrust', 'lawsuit', 'department of justice', 'doj', 'ftc',
    'regulation', 'regulatory', 'congress', 'senate', 'house',
    'ai policy', 'gemini', 'google ai', 'deepmind', 'openai',
    'acquisition', 'merger', 'partnership', 'earnings', 'revenue',
    'layoff', 'restructuring', 'ceo', 'executive', 'sundar pichai',
    'privacy', 'data breach', 'security', 'investigation',
]

WAYMO_MINOR_INCIDENT_KEYWORDS = [
    'kills cat', 'killed cat', 'hit cat', 'struck cat',
    'kills dog', 'killed dog', 'hit dog', 'struck dog',
    'minor accident', 'minor collision', 'fender bender',
    'traffic cone', 'construction cone', 'blocked by',
    'confused by', 'stuck in traffic', 'blocking traffic',
    'honking at', 'honked at', 'drives too slow',
]

WAYMO_REVIEW_KEYWORDS = [
    'review:', 'hands-on:', 'first ride:', 'we rode in',
    'i rode in', 'test drive', 'test ride', 'my experience',
    "what it's like", 'pros and cons', 'impressions',
    'video review', 'ride along', 'demonstration',
]

WAYMO_MAJOR_NEWS_KEYWORDS = [
    'permit', 'approval', 'regulatory', 'dmv', 'cpuc',
    'expansion', 'launch', 'new city', 'new market',
    'partnership', 'acquisition', 'funding', 'investment',
    'lawsuit', 'investigation', 'crash', 'fatality',
    'freeway', 'highway', 'autonomous vehicle regulation',
    'safety report', 'disengagement report', 'audit',
]

# "Albemarle" is also a county, a sound and a town in North Carolina
ALBEMARLE_GEOGRAPHIC_KEYWORDS = [
    'albemarle county', 'albemarle sound', 'albemarle high school',
    'albemarle police', 'albemarle road', 'city of albemarle',
    'albemarle, n.c.', 'albemarle, nc', 'albemarle, va', 'albemarle, virginia',
    'charlottesville', 'stanly county',
]

ALBEMARLE_BUSINESS_KEYWORDS = [
    'lithium', 'bromine', 'catalyst', 'catalysts', 'battery', 'batteries',
    'chemical', 'chemicals', 'mining', 'refinery', 'specialty chemicals',
    'albemarle corp', 'albemarle corporation', 'nyse', 'earnings', 'revenue',
    'ceo', 'shareholders', 'acquisition', 'plant', 'production', 'investment',
]

# Override registration keys; origins may carry an "_rss" suffix
ENTITY_ALIASES = {
    'us_soccer_foundation': 'us_soccer',
    'cindy_parlow_cone': 'us_soccer',
}


# ---- matching helpers ----

def contains_any(text: str, phrases: Iterable[str]) -> bool:
    """Substring match of any phrase (text and phrases are lowercase)."""
    return any(phrase in text for phrase in phrases)


def _keyword_pattern(keyword: str) -> str:
    return r'\b' + re.escape(keyword.lower()) + r'\b'


def match_keywords(text: str, keywords: Iterable[str]) -> List[str]:
    """Keywords found in ``text`` on word boundaries, case-insensitively."""
    lowered = (text or '').lower()
    return [kw for kw in keywords if re.search(_keyword_pattern(kw), lowered)]


def host_matches(link: Optional[str], domains: Iterable[str]) -> bool:
    """True when the link's host is, or is a subdomain of, one of ``domains``."""
    host = normalize_host(host_of(link or ''))
    if not host:
        return False
    return any(host == d or host.endswith('.' + d) for d in domains)


def entity_of(origin: str) -> str:
    """Override-table key for an origin tag."""
    entity = (origin or '').strip().lower()
    if entity.endswith('_rss'):
        entity = entity[:-len('_rss')]
    return ENTITY_ALIASES.get(entity, entity)


@dataclass(frozen=True)
class FilterSubject:
    """The text a rule sees: candidate fields plus precomputed lowercase forms."""
    origin: str
    title: str
    summary: str = ''
    source: str = ''
    link: Optional[str] = None

    @property
    def text(self) -> str:
        return f"{self.title} {self.summary}".lower()

    @property
    def title_lower(self) -> str:
        return self.title.lower()

    @classmethod
    def from_candidate(cls, candidate) -> "FilterSubject":
        return cls(
            origin=candidate.origin or '',
            title=candidate.title or '',
            summary=candidate.summary or '',
            source=candidate.source or '',
            link=candidate.link,
        )


@dataclass(frozen=True)
class Rule:
    """A named predicate; ``check`` returning True means reject."""
    name: str
    check: Callable[[FilterSubject], bool]
    reason: str


@dataclass(frozen=True)
class FilterDecision:
    rejected: bool
    rule: str = ''
    reason: str = ''


ACCEPT = FilterDecision(rejected=False)


# ---- universal predicates ----

def is_wire_boilerplate(s: FilterSubject) -> bool:
    return any(marker in s.title for marker in WIRE_TITLE_MARKERS)


def is_press_release(s: FilterSubject) -> bool:
    return contains_any(f"{s.title} {s.summary} {s.source}".lower(), PRESS_RELEASE_KEYWORDS)


def is_stock_price_focused(s: FilterSubject) -> bool:
    """Stock talk from a financial outlet, any crypto talk, or a price-move headline."""
    text = s.text
    if contains_any(text, STOCK_KEYWORDS) and contains_any(s.source.lower(), FINANCIAL_SOURCES):
        return True
    if match_keywords(text, CRYPTO_KEYWORDS):
        return True
    return contains_any(s.title_lower, STOCK_TITLE_PHRASES)


def is_opinion_piece(s: FilterSubject) -> bool:
    if contains_any(s.title_lower, OPINION_TITLE_MARKERS):
        return True
    if s.link and contains_any(s.link.lower(), OPINION_URL_PATTERNS):
        return True
    return contains_any(s.text, OPINION_BYLINES)


def is_shopping(s: FilterSubject) -> bool:
    return contains_any(s.text, SHOPPING_KEYWORDS) or bool(PRICE_PATTERN.search(s.title_lower))


def is_local_crime(s: FilterSubject) -> bool:
    text = s.text
    return contains_any(text, LOCAL_CRIME_KEYWORDS) and not contains_any(text, POLITICAL_KEYWORDS)


def blocked_domain_rule(domains: Sequence[str]) -> Rule:
    domains = [normalize_host(d.strip()) for d in domains if d and d.strip()]
    return Rule('blocked_domain', lambda s: host_matches(s.link, domains),
                'low-quality or reposter domain')


# ---- override predicate builders ----

def reject_if_any(name: str, keywords: Sequence[str], reason: str) -> Rule:
    return Rule(name, lambda s: contains_any(s.text, keywords), reason)


def reject_unless_any(name: str, keywords: Sequence[str], reason: str) -> Rule:
    return Rule(name, lambda s: not contains_any(s.text, keywords), reason)


def reject_if_any_unless(name: str, keywords: Sequence[str], keep: Sequence[str],
                         reason: str) -> Rule:
    """Reject on ``keywords`` unless a ``keep`` keyword is also present."""
    return Rule(name,
                lambda s: contains_any(s.text, keywords) and not contains_any(s.text, keep),
                reason)


def require_keywords(name: str, keywords: Sequence[str], reason: str = '') -> Rule:
    """Reject unless a keyword appears on word boundaries in title or summary."""
    keywords = list(keywords)
    return Rule(name, lambda s: not match_keywords(s.text, keywords),
                reason or f"no required keyword ({', '.join(keywords[:3])}...)")


def _soccer_routine(s: FilterSubject) -> bool:
    text = s.text
    routine = contains_any(text, SOCCER_MATCH_KEYWORDS) or contains_any(text, SOCCER_TRANSFER_KEYWORDS)
    return routine and not contains_any(text, SOCCER_GOVERNANCE_KEYWORDS)


def _albemarle_geographic(s: FilterSubject) -> bool:
    return (contains_any(s.text, ALBEMARLE_GEOGRAPHIC_KEYWORDS)
            and not match_keywords(s.text, ALBEMARLE_BUSINESS_KEYWORDS))


def default_universal_rules(shopping: bool = True, local_crime: bool = True,
                            blocked_domains: Optional[Sequence[str]] = None) -> List[Rule]:
    rules = [
        Rule('wire_boilerplate', is_wire_boilerplate, 'syndicated earnings snapshot'),
        Rule('press_release', is_press_release, 'press release distributor'),
        Rule('stock_price', is_stock_price_focused, 'stock-price or crypto-trading focus'),
        Rule('opinion', is_opinion_piece, 'opinion or op-ed'),
    ]
    if shopping:
        rules.append(Rule('shopping', is_shopping, 'shopping or promotional listing'))
    if local_crime:
        rules.append(Rule('local_crime', is_local_crime, 'local crime without policy angle'))
    if blocked_domains:
        rules.append(blocked_domain_rule(blocked_domains))
    return rules


def default_overrides() -> Dict[str, List[Rule]]:
    return {
        'delta_air_lines': [
            reject_if_any('delta_incident', DELTA_INCIDENT_KEYWORDS, 'airline incident'),
            reject_if_any('delta_route', DELTA_ROUTE_KEYWORDS, 'route announcement'),
        ],
        'tiktok': [
            reject_if_any('tiktok_influencer', TIKTOK_INFLUENCER_KEYWORDS, 'influencer content'),
            reject_unless_any('tiktok_not_substantive', TIKTOK_SUBSTANTIVE_KEYWORDS,
                              'no corporate, regulatory or legal angle'),
        ],
        'us_soccer': [
            reject_if_any('soccer_international', SOCCER_INTERNATIONAL_KEYWORDS,
                          'international soccer'),
            Rule('soccer_routine', _soccer_routine, 'routine match or transfer coverage'),
        ],
        'stubhub': [
            reject_if_any('stubhub_ticket_guide', STUBHUB_TICKET_GUIDE_KEYWORDS,
                          'ticket buying guide'),
            reject_if_any_unless('stubhub_event', STUBHUB_EVENT_KEYWORDS,
                                 STUBHUB_BUSINESS_KEYWORDS, 'event coverage'),
        ],
        'google': [
            reject_if_any('google_consumer_review', GOOGLE_CONSUMER_REVIEW_KEYWORDS,
                          'consumer product review'),
            reject_if_any_unless('google_minor_update', GOOGLE_MINOR_UPDATE_KEYWORDS,
                                 GOOGLE_MAJOR_NEWS_KEYWORDS, 'minor product update'),
        ],
        'waymo': [
            reject_if_any('waymo_minor_incident', WAYMO_MINOR_INCIDENT_KEYWORDS, 'minor incident'),
            reject_if_any_unless('waymo_review', WAYMO_REVIEW_KEYWORDS,
                                 WAYMO_MAJOR_NEWS_KEYWORDS, 'ride review'),
        ],
        'albemarle': [
            Rule('albemarle_geographic', _albemarle_geographic, 'place name, not the company'),
            require_keywords('albemarle_business', ALBEMARLE_BUSINESS_KEYWORDS,
                             'no business context'),
        ],
    }


def default_exemptions() -> Dict[str, Set[str]]:
    # Financial and crypto coverage is in scope for Coinbase
    return {'coinbase': {'stock_price'}}


class FilterChain:
    """Ordered universal rules, then per-entity overrides."""

    def __init__(self, universal: Optional[List[Rule]] = None,
                 overrides: Optional[Dict[str, List[Rule]]] = None,
                 exemptions: Optional[Dict[str, Set[str]]] = None,
                 bypass_origins: Optional[Iterable[str]] = None,
                 verbose: bool = False):
        self.universal = list(universal if universal is not None else default_universal_rules())
        self.overrides = {entity_of(k): list(v) for k, v in
                          (overrides if overrides is not None else default_overrides()).items()}
        self.exemptions = {entity_of(k): set(v) for k, v in
                           (exemptions if exemptions is not None else default_exemptions()).items()}
        self.bypass_origins = {o.lower() for o in
                               (bypass_origins if bypass_origins is not None else BYPASS_ORIGINS)}
        self.verbose = verbose

    def rules_for(self, origin: str) -> List[Rule]:
        """The rules applied to ``origin``, in evaluation order."""
        if (origin or '').lower() in self.bypass_origins:
            return []
        entity = entity_of(origin)
        exempt = self.exemptions.get(entity, set())
        universal = [r for r in self.universal if r.name not in exempt]
        return universal + self.overrides.get(entity, [])

    def evaluate_subject(self, subject: FilterSubject) -> FilterDecision:
        for rule in self.rules_for(subject.origin):
            if rule.check(subject):
                if self.verbose:
                    sys.stderr.write(f"Filtered [{rule.name}] {subject.origin}: \"{subject.title}\"\n")
                return FilterDecision(rejected=True, rule=rule.name, reason=rule.reason)
        return ACCEPT

    def evaluate(self, candidate) -> FilterDecision:
        return self.evaluate_subject(FilterSubject.from_candidate(candidate))

    def should_filter(self, origin: str, title: str, summary: str = '', source: str = '',
                      link: Optional[str] = None) -> bool:
        """True when the item should be rejected."""
        subject = FilterSubject(origin=origin or '', title=title or '', summary=summary or '',
                                source=source or '', link=link)
        return self.evaluate_subject(subject).rejected


def build_filter_chain(filter_config=None, verbose: bool = False) -> FilterChain:
    """Filter chain from a FilterConfig (defaults when None)."""
    if filter_config is None:
        return FilterChain(verbose=verbose)

    blocked = []
    if filter_config.enable_blocked_domains:
        blocked = list(BLOCKED_DOMAINS) + list(filter_config.extra_blocked_domains)
    universal = default_universal_rules(
        shopping=filter_config.enable_shopping_filter,
        local_crime=filter_config.enable_local_crime_filter,
        blocked_domains=blocked,
    )

    overrides = default_overrides()
    for origin, keywords in filter_config.required_keywords.items():
        if keywords:
            overrides.setdefault(entity_of(origin), []).append(
                require_keywords(f"{entity_of(origin)}_keywords", keywords))

    exemptions = default_exemptions()
    for origin, rule_names in filter_config.exemptions.items():
        exemptions.setdefault(entity_of(origin), set()).update(rule_names)

    return FilterChain(universal=universal, overrides=overrides, exemptions=exemptions,
                       bypass_origins=filter_config.bypass_origins, verbose=verbose)


# CLI for testing
if __name__ == '__main__':
    chain = FilterChain(verbose=True)
    samples = [
        ('google_alerts', 'Stock soars after earnings', 'Zacks'),
        ('nyt_top_news_rss', 'Stock soars after earnings', 'Zacks'),
        ('delta_air_lines_rss', 'Delta flight diverted after engine failure', 'ap.org'),
        ('google_alerts', 'Acme names new CEO', 'reuters.com'),
    ]
    for origin, title, source in samples:
        decision = chain.evaluate_subject(FilterSubject(origin=origin, title=title, source=source))
        verdict = f"REJECT ({decision.rule})" if decision.rejected else "accept"
        print(f"{origin:24} {verdict:28} {title}")
