"""
Site-specific selector cascades for naukri.com markup.

Every list is ordered by priority and consumed by a first-match-wins helper,
so adding a selector to the front of a list makes it the preferred source
for that field.
"""

SITE_ORIGIN = "https://www.naukri.com"

# Detail pages live under /job-listings-<slug>-<id>
DETAIL_PATH_MARKER = "job-listings"

# -- Listing pages -----------------------------------------------------------

# Primary "job tuple" cards
CARD_SELECTORS = [
    "article.jobTuple",
    "div.srp-tuple",
    "div.jobCard",
    "article[data-job-id]",
    'div[class*="tuple"]',
    'article[class*="tuple"]',
]
CARD_GROUP = ", ".join(CARD_SELECTORS)

# Broader containers tried (in order) when no primary card matches
FALLBACK_CONTAINER_SELECTORS = [
    'article[class*="job"]',
    'div[class*="jobTuple"]',
    'div[class*="srp"]',
    "article.row",
]

DETAIL_LINK_SELECTOR = 'a[href*="job-listings"], a[href^="/job-listings"]'

# Ancestors accepted as a card boundary when climbing from a detail link
CARD_BOUNDARY_TAGS = ["article", "div", "li", "section"]

TITLE_SELECTORS = [
    'a[href*="job-listings"]',
    'a[href^="/job-listings"]',
    "a.title, .title a",
    "a.subtitle, .subtitle a",
    'a[class*="title"]',
    "h2 a, h3 a",
    ".row1 a",
]

URL_SELECTORS = [
    'a[href*="job-listings"]',
    'a[href^="/job-listings"]',
    "a.title",
    "a.subtitle",
    'a[class*="title"]',
    "h2 a, h3 a",
    ".row1 a",
]

# Attributes on the card itself that may carry the detail URL
CARD_URL_ATTRIBUTES = ["data-href", "data-url", "data-jdurl"]

COMPANY_SELECTORS = [
    ".comp-name, .companyInfo",
    "a.comp-name",
    ".company-name",
    'a[class*="company"]',
    ".row2 a",
]

LOCATION_SELECTORS = [
    ".loc-wrap .location, .location",
    ".locWdth",
    'span[class*="location"]',
    ".row3 .location",
]

EXPERIENCE_SELECTORS = [
    ".exp-wrap .exp, .experience",
    'span[class*="exp"]',
    ".row4 .exp",
]

SALARY_SELECTORS = [
    ".sal-wrap .salary, .salary",
    'span[class*="sal"]',
    ".row5 .salary",
]

SNIPPET_SELECTORS = [
    ".job-desc",
    ".desc",
    ".job-description",
    ".snippet",
]

POSTED_DATE_SELECTORS = [
    ".job-post-day, .date",
    'span[class*="date"]',
    'span[class*="posted"]',
    ".postedDate",
]

# Removed from snippets before conversion
SNIPPET_NOISE_SELECTOR = ".similar-jobs, .related-jobs"

NEXT_LINK_SELECTORS = [
    "a.styles_btn-secondary__2AsIP",
    'a[class*="btn-secondary"]',
    'a[rel="next"]',
]

# -- Detail pages ------------------------------------------------------------

# The job-description region rendered by the current site build
PRIMARY_DESCRIPTION_SELECTORS = [
    "div.styles_JDC__dang-inner-html__h0K4t",
    'div[class*="JDC__dang-inner-html"]',
]

DESCRIPTION_SELECTORS = [
    "div.styles_detail__U2rw4.styles_dang-inner-html___BCwh",
    ".styles_dang-inner-html___BCwh",
    'div[class*="dang-inner-html"]',
    ".jd-desc",
    ".job-description",
    ".job-desc",
    ".job-details",
    ".jd-cont",
    ".jd-text",
    ".description",
    ".desc",
    ".detail-contents",
    ".dang-inner-html",
    ".text-container",
    "#job_description",
    "#jobDescription",
    "#jobDescriptionText",
    '[class*="job-description"]',
    '[itemprop="description"]',
    'section[class*="jd"]',
    '[class*="jd"]',
    "article.jd-info",
    "section.content",
    ".job_description",
    "article .desc",
]

# Company/about blocks, used when no description region qualifies
ABOUT_SELECTORS = [
    'div[class*="styles_detail__"][class*="dang-inner-html"]',
    ".about-company",
    ".company-info",
]

# Stripped from detail documents before any extraction
DETAIL_NOISE_SELECTOR = "p.source, [data-source], .source, .apply-button, .actions, .notclicky"

# Headings that start trailing "more jobs" sections inside a description
RELATED_SECTION_WORDS = ("related", "similar", "recommended")

DETAIL_EXPERIENCE_SELECTORS = [
    ".exp-wrap .exp",
    ".experience span",
    'span[class*="experience"]',
    '[class*="experience"]',
]

DETAIL_SALARY_SELECTORS = [
    ".salary-wrap .salary",
    ".salary span",
    'span[class*="salary"]',
    '[class*="salary"]',
]

DETAIL_JOB_TYPE_SELECTORS = [
    ".job-type",
    ".employment-type",
    '[class*="job-type"]',
    '[class*="employment-type"]',
]

DETAIL_TAG_SELECTORS = [
    'a[class*="chip"]',
    '[class*="key-skill"] a',
    ".key-skill a",
]

# Secondary values longer than this are container text, not a field
MAX_SECONDARY_FIELD_LENGTH = 80

# -- Challenge widget --------------------------------------------------------

CHALLENGE_FRAME_SELECTOR = 'iframe[src*="challenges"]'
CHALLENGE_CHECKBOX_SELECTOR = 'input[type="checkbox"]'

FIELD_CASCADES = {
    "title": TITLE_SELECTORS,
    "url": URL_SELECTORS,
    "company": COMPANY_SELECTORS,
    "location": LOCATION_SELECTORS,
    "experience": EXPERIENCE_SELECTORS,
    "salary": SALARY_SELECTORS,
    "description": SNIPPET_SELECTORS,
    "postedDate": POSTED_DATE_SELECTORS,
}
