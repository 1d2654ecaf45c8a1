"""
Rule tables for the offline site analysis: industry detection and
commodity-phrase rewrites per industry.

Rewrites are example copy, not advice, so a report built from them still
shows the reader what specific messaging looks like.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

INDUSTRY_TERMS: dict[str, tuple[str, ...]] = {
    "saas": (
        "saas", "software", "platform", "app", "dashboard", "api", "integration",
        "subscription", "pricing plans", "free trial", "demo", "onboarding", "user",
        "login", "sign up", "cloud", "workflow", "automation", "analytics",
    ),
    "manufacturing": (
        "cnc", "machining", "fabrication", "manufacturing", "parts", "prototype",
        "tolerance", "precision", "metal", "welding", "iso 9001", "as9100",
        "equipment", "facility",
    ),
    "services": (
        "consulting", "services", "solutions", "agency", "firm", "contractor",
        "project management", "strategy", "advisory",
    ),
    "ecommerce": (
        "shop", "cart", "checkout", "buy now", "add to cart", "shipping",
        "free shipping", "product", "order", "store",
    ),
}

MIN_INDUSTRY_SIGNALS = 3


@dataclass(frozen=True)
class PhraseRewrite:
    problem: str
    rewrite: str


_QUALITY = "Every competitor claims quality - it's meaningless without proof"
_CUSTOMER = "Empty claim that says nothing specific"
_INNOVATIVE = "Buzzword without substance"
_TEAM = "Every company has a team - what makes yours different?"
_TRACK = "Track record claim without the track record"
_EXCELLENCE = "Generic statement every company makes"
_LEADING = "Unverifiable claim that prospects ignore"
_BEST = "Superlative without evidence"
_WORLD = "Meaningless claim - what does world-class mean?"
_CUTTING = "Tech buzzword that says nothing"
_STATE = "Overused phrase that prospects tune out"
_EXCEEDING = "Vague promise with no specifics"
_PASSIONATE = "Emotional claim that can't be verified"
_PARTNER = "Trust must be earned through proof, not claimed"

_PROBLEMS: dict[str, str] = {
    "quality craftsmanship": _QUALITY,
    "customer-focused": _CUSTOMER,
    "innovative solutions": _INNOVATIVE,
    "dedicated team": _TEAM,
    "proven track record": _TRACK,
    "committed to excellence": _EXCELLENCE,
    "industry-leading": _LEADING,
    "best-in-class": _BEST,
    "world-class": _WORLD,
    "cutting-edge": _CUTTING,
    "state-of-the-art": _STATE,
    "exceeding expectations": _EXCEEDING,
    "passionate about": _PASSIONATE,
    "your trusted partner": _PARTNER,
}

_SAAS_REWRITES: dict[str, str] = {
    "quality craftsmanship": 'Try: "99.99% uptime SLA" or "Trusted by 2,400+ teams including Spotify and Dropbox"',
    "customer-focused": 'Try: "Average response time: 4 minutes" or "Dedicated CSM for accounts over $10k ARR"',
    "innovative solutions": 'Try: "We shipped 47 features last quarter based on customer requests" or name a specific capability',
    "dedicated team": 'Try: "22 engineers, 8 from Google/Meta/Apple" or "Average tenure: 4 years"',
    "proven track record": 'Try: "10M+ workflows automated since 2019" or "Helping 850 companies save 12 hours/week"',
    "committed to excellence": 'Try: "SOC 2 Type II certified. GDPR compliant. 256-bit encryption at rest and in transit."',
    "industry-leading": 'Try: "#1 on G2 for ease of use" or "Named a Gartner Cool Vendor 2024"',
    "best-in-class": 'Try: "4.8/5 average rating across 2,000+ reviews" or cite specific benchmark data',
    "world-class": 'Try: "Teams in 40 countries trust us" or "12 language localization built in"',
    "cutting-edge": 'Try: "AI-powered insights that save you 3 hours daily" or name your actual technology',
    "state-of-the-art": 'Try: "Built on AWS with auto-scaling to handle 10M requests/day" or be specific about your stack',
    "exceeding expectations": 'Try: "91% customer retention rate" or "NPS score of 72 (industry avg: 41)"',
    "passionate about": "Try: \"We use our own product every day - here's our public roadmap\" or show don't tell",
    "your trusted partner": 'Try: "Average customer has been with us 3.2 years" or "Zero data breaches since founding"',
}

_SERVICES_REWRITES: dict[str, str] = {
    "quality craftsmanship": 'Try: "94% of clients renew their contracts" or "Average engagement: 2.3 years"',
    "customer-focused": 'Try: "Weekly status calls. Monthly reports. Quarterly reviews." or "24/7 emergency hotline"',
    "innovative solutions": 'Try: "We developed a proprietary methodology that reduced client costs 23%" or name it',
    "dedicated team": 'Try: "15 consultants with avg 12 years experience" or "Former executives from [industry leaders]"',
    "proven track record": 'Try: "340 projects completed. $47M saved for clients." or "Serving Fortune 500 since 2008"',
    "committed to excellence": 'Try: "Every deliverable goes through 3-stage QA. Every deadline is contractual."',
    "industry-leading": 'Try: "Ranked #3 consulting firm in [region] by [publication]" or cite awards',
    "best-in-class": 'Try: "Our clients see 3.2x ROI within 12 months" or show case study data',
    "world-class": 'Try: "Clients in 18 countries" or "Certified in [relevant certifications]"',
    "cutting-edge": 'Try: "We integrate with your existing tech stack - Salesforce, HubSpot, SAP" or be specific',
    "state-of-the-art": 'Try: "Using the same frameworks as McKinsey and BCG" or cite your actual methodology',
    "exceeding expectations": 'Try: "87% of projects delivered early. Zero budget overruns in 5 years." or be specific',
    "passionate about": 'Try: "Our team has published 14 books on [topic]" or show your thought leadership',
    "your trusted partner": 'Try: "78% of business comes from referrals" or "Average client relationship: 6 years"',
}

_DEFAULT_REWRITES: dict[str, str] = {
    "quality craftsmanship": 'Try: "47 machinists with an average tenure of 12 years" or "0.02% defect rate across 10,000 parts"',
    "customer-focused": 'Try: "Your dedicated project manager responds within 2 hours" or "93% of business from referrals"',
    "innovative solutions": 'Try: "We developed custom fixturing that cut your setup time 40%" or name a specific innovation',
    "dedicated team": 'Try: "Average employee tenure: 8 years" or "3 engineers with 60+ years combined experience"',
    "proven track record": 'Try: "2,400 projects delivered since 2005" or "Zero safety incidents in 15 years"',
    "committed to excellence": 'Try: "Every part inspected. Every tolerance documented. Every deadline met."',
    "industry-leading": 'Try: "First in the region to offer 5-axis capability" or cite an industry award',
    "best-in-class": 'Try: "0.02% defect rate vs. industry average of 0.5%" or show a specific comparison',
    "world-class": 'Try: "ISO 9001 and AS9100 certified" or "Serving aerospace clients in 12 countries"',
    "cutting-edge": 'Try: "5-axis CNC with 0.0001 inch positioning accuracy" or name your actual equipment',
    "state-of-the-art": 'Try: "$2M invested in new equipment since 2020" or list specific machines',
    "exceeding expectations": 'Try: "98% on-time delivery for 5 years running" or "Average project comes in 3 days early"',
    "passionate about": "Try: \"Our machinists average 12 years tenure - they chose this career\" or show don't tell",
    "your trusted partner": 'Try: "Average client relationship: 8 years" or "Founded in 1985, same ownership since day one"',
}

_REWRITES_BY_INDUSTRY = {
    "saas": _SAAS_REWRITES,
    "services": _SERVICES_REWRITES,
}


def detect_industry(contents: Iterable[str]) -> str:
    """
    Classify a site as saas, manufacturing, services, ecommerce or general by
    counting indicator terms. Ties resolve in that order.
    """

    corpus = " ".join(content.lower() for content in contents)
    scores = {
        industry: sum(1 for term in terms if term in corpus)
        for industry, terms in INDUSTRY_TERMS.items()
    }
    best = max(scores.values())
    if best < MIN_INDUSTRY_SIGNALS:
        return "general"
    for industry in ("saas", "manufacturing", "services", "ecommerce"):
        if scores[industry] == best:
            return industry
    return "general"


def phrase_rewrites(industry: str) -> dict[str, PhraseRewrite]:
    rewrites = _REWRITES_BY_INDUSTRY.get(industry, _DEFAULT_REWRITES)
    return {
        phrase: PhraseRewrite(problem=_PROBLEMS[phrase], rewrite=rewrite)
        for phrase, rewrite in rewrites.items()
    }
