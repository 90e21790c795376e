"""Tests for the per-site scrapers, parsing fixture HTML."""

from datetime import datetime, timezone

import httpx
import pytest
from bs4 import BeautifulSoup

from community_scraper.config.loader import SourceConfig
from community_scraper.errors import ParseError, ValidationError
from community_scraper.sources.business_directory import BusinessDirectoryScraper, show_all_url
from community_scraper.sources.civic_calendar import CivicCalendarScraper
from community_scraper.sources.jsonld_calendar import JsonLdCalendarScraper
from community_scraper.sources.news_site import NewsSiteScraper

PARAGRAPH = "The Wetaskiwin Regional Public Library will extend its summer hours starting next week."
COUNCIL = "Council voted on Monday to add two more evening openings for the rest of the year."


def soup(html):
    return BeautifulSoup(html, "lxml")


def article_html(title="Library extends hours | Wetaskiwin Times", date="2025-07-08T14:30:00-06:00", body=None):
    body = body or f"<p>{PARAGRAPH}</p><p>{COUNCIL}</p>"
    time_tag = f'<time datetime="{date}">published</time>' if date else ""
    return f"""
    <html>
    <head><meta property="og:image" content="/wp/library.jpg"></head>
    <body>
        <article>
            <h1>{title}</h1>
            <span class="byline">By Jane Doe</span>
            {time_tag}
            <div class="article-content">{body}</div>
            <div class="tags"><a>Library</a></div>
        </article>
    </body>
    </html>
    """


@pytest.fixture
def news_source():
    return SourceConfig.from_dict({
        "source_id": "wetaskiwin_times",
        "source_name": "Wetaskiwin Times",
        "kind": "news_site",
        "category": "news",
        "base_url": "https://www.wetaskiwintimes.com",
        "title_suffix": " | Wetaskiwin Times",
        "invalid_title_patterns": [r"Latest\s+(Local\s+)?Headlines", "^.{0,10}$"],
        "include_patterns": [r"/news/[^/]+/[^/]+$"],
        "url_categories": {"/sports/": "sports"},
    })


@pytest.fixture
def news_scraper(news_source, heuristics, clock):
    return NewsSiteScraper(news_source, http_client=None, heuristics=heuristics, clock=clock)


class TestNewsSiteScraper:
    """Tests for article extraction."""

    URL = "https://www.wetaskiwintimes.com/news/local-news/library-extends-hours"

    def test_parse_article(self, news_scraper):
        article = news_scraper.parse_article(soup(article_html()), self.URL)

        assert article.title == "Library extends hours"
        assert article.published_at == datetime(2025, 7, 8, 20, 30, tzinfo=timezone.utc)
        assert article.author == "Jane Doe"
        assert article.image_url == "https://www.wetaskiwintimes.com/wp/library.jpg"
        assert article.tags == ["Library"]
        assert article.content.startswith(PARAGRAPH)
        assert article.summary.startswith("The Wetaskiwin Regional")
        assert article.category == "city-council"
        assert article.source_name == "Wetaskiwin Times"
        assert article.source_url == self.URL

    def test_date_recovered_from_url(self, news_scraper):
        url = "https://www.wetaskiwintimes.com/2025/07/05/library-extends-hours"
        article = news_scraper.parse_article(soup(article_html(date=None)), url)

        assert article.published_at == datetime(2025, 7, 5, tzinfo=timezone.utc)

    def test_missing_date_falls_back_to_now(self, news_scraper, now):
        article = news_scraper.parse_article(soup(article_html(date=None)), self.URL)
        assert article.published_at == now

    def test_url_category_override(self, news_scraper):
        url = "https://www.wetaskiwintimes.com/sports/local/library-run"
        article = news_scraper.parse_article(soup(article_html()), url)

        assert article.category == "sports"

    def test_section_page_rejected(self, news_scraper):
        html = article_html(title="News | Latest Local Headlines")
        with pytest.raises(ValidationError):
            news_scraper.parse_article(soup(html), self.URL)

    def test_short_body_rejected(self, news_scraper):
        html = """
        <html><body>
            <h1>Library extends hours</h1>
            <div class="article-content"><p>Too short.</p></div>
        </body></html>
        """
        with pytest.raises(ValidationError):
            news_scraper.parse_article(soup(html), self.URL)

    def test_sponsored_rejected(self, news_scraper):
        body = f"<p>{PARAGRAPH}</p><p>This article is sponsored by Acme Widgets of Wetaskiwin.</p>"
        with pytest.raises(ValidationError):
            news_scraper.parse_article(soup(article_html(body=body)), self.URL)

    def test_missing_title(self, news_scraper):
        with pytest.raises(ParseError):
            news_scraper.parse_article(soup(f"<html><body><p>{PARAGRAPH}</p></body></html>"), self.URL)

    @pytest.mark.asyncio
    async def test_scrape_records_fetch_errors(self, news_source, heuristics, clock, make_client):
        listing = """
        <a href="/news/local-news/library-extends-hours">ok</a>
        <a href="/news/local-news/gone">gone</a>
        <a href="/about">about</a>
        """
        pages = {
            "/": listing,
            "/news/local-news/library-extends-hours": article_html(),
        }

        def handler(request):
            if request.url.path in pages:
                return httpx.Response(200, text=pages[request.url.path])
            return httpx.Response(404)

        async with make_client(handler) as client:
            scraper = NewsSiteScraper(news_source, client, heuristics=heuristics, clock=clock)
            articles = await scraper.scrape()

        assert [a.title for a in articles] == ["Library extends hours"]
        assert len(scraper.errors) == 1
        assert scraper.errors[0].startswith("wetaskiwin_times: article fetch failed")


CALENDAR_HTML = """
<div class="calendar">
    <h3><a href="/Calendar.aspx?EID=101">Canada Day Celebration</a></h3>
    <div>July 21, 2025, 3:00 PM - 6:00 PM @ Civic Centre</div>
    <div>Join us for family fun and fireworks. Call 780-361-4400 or email events@wetaskiwin.ca.</div>
    <div><a href="/Calendar.aspx?EID=101">More Details</a></div>
    <h3><a href="/Calendar.aspx?EID=102">Farmers Market Weekend</a></h3>
    <div>July 26, 2025, 9:00 AM - July 27, 2025, 5:00 PM</div>
    <h3><a href="/Calendar.aspx?EID=100">Past Event</a></h3>
    <div>June 1, 2025, 10:00 AM</div>
    <h3>Upcoming Events</h3>
</div>
"""


class TestCivicCalendarScraper:
    """Tests for the municipal calendar."""

    @pytest.fixture
    def scraper(self, heuristics, clock):
        source = SourceConfig.from_dict({
            "source_id": "wetaskiwin_ca",
            "source_name": "City of Wetaskiwin",
            "kind": "civic_calendar",
            "category": "events",
            "base_url": "https://wetaskiwin.ca",
            "organizer": "City of Wetaskiwin",
        })
        return CivicCalendarScraper(source, http_client=None, heuristics=heuristics, clock=clock)

    def test_parse_calendar(self, scraper):
        events = scraper.parse_calendar(soup(CALENDAR_HTML), "https://wetaskiwin.ca/calendar.aspx")

        assert [e.title for e in events] == ["Canada Day Celebration", "Farmers Market Weekend"]

        canada_day = events[0]
        # 3:00 PM Mountain Daylight Time
        assert canada_day.date == datetime(2025, 7, 21, 21, 0, tzinfo=timezone.utc)
        assert canada_day.time == "3:00 PM"
        assert canada_day.location == "Civic Centre"
        assert canada_day.description.startswith("Join us for family fun")
        assert canada_day.contact_phone == "780-361-4400"
        assert canada_day.contact_email == "events@wetaskiwin.ca"
        assert canada_day.organizer == "City of Wetaskiwin"
        assert canada_day.website == "https://wetaskiwin.ca/Calendar.aspx?EID=101"
        assert canada_day.category == "family"

    def test_multi_day_event(self, scraper):
        market = scraper.parse_calendar(soup(CALENDAR_HTML), "https://wetaskiwin.ca/calendar.aspx")[1]

        assert market.end_date == datetime(2025, 7, 27, 6, 0, tzinfo=timezone.utc)
        assert market.location == "Wetaskiwin, AB"
        assert market.description == "Farmers Market Weekend"
        assert market.category == "food"


JSONLD_HTML = """
<html><head>
<script type="application/ld+json">
{"@context": "https://schema.org", "@graph": [
  {"@type": "Event", "name": "Trivia Night",
   "startDate": "2025-07-18T19:00:00-06:00", "endDate": "2025-07-18T21:00:00-06:00",
   "description": "<p>Test your knowledge at the <b>library</b>.</p>",
   "location": {"@type": "Place", "name": "Wetaskiwin Library",
                "address": {"@type": "PostalAddress", "streetAddress": "5002 51 Ave"}},
   "image": ["https://img.example/trivia.jpg"],
   "url": "https://tockify.com/connectwetaskiwin/detail/1"},
  {"@type": "Event", "name": "Heritage Day", "startDate": "2025-08-04"},
  {"@type": "Event", "name": "Old Event", "startDate": "2025-06-01T10:00:00-06:00"},
  {"@type": "Organization", "name": "Connect Wetaskiwin"}
]}
</script>
<script type="application/ld+json">not json</script>
</head><body></body></html>
"""


class TestJsonLdCalendarScraper:
    """Tests for schema.org Event extraction."""

    @pytest.fixture
    def events(self, heuristics, clock):
        source = SourceConfig.from_dict({
            "source_id": "connect_wetaskiwin",
            "source_name": "Connect Wetaskiwin",
            "kind": "jsonld_calendar",
            "category": "events",
            "base_url": "https://connectwetaskiwin.com",
            "listing_urls": ["https://tockify.com/connectwetaskiwin"],
            "organizer": "Connect Wetaskiwin",
        })
        scraper = JsonLdCalendarScraper(source, http_client=None, heuristics=heuristics, clock=clock)
        return scraper.parse_events(soup(JSONLD_HTML), "https://tockify.com/connectwetaskiwin")

    def test_future_events_only(self, events):
        assert [e.title for e in events] == ["Trivia Night", "Heritage Day"]

    def test_timed_event(self, events):
        trivia = events[0]

        assert trivia.date == datetime(2025, 7, 19, 1, 0, tzinfo=timezone.utc)
        assert trivia.end_date == datetime(2025, 7, 19, 3, 0, tzinfo=timezone.utc)
        assert trivia.time == "7:00 PM"
        assert trivia.location == "Wetaskiwin Library, 5002 51 Ave"
        assert "<" not in trivia.description
        assert "library" in trivia.description
        assert trivia.image_url == "https://img.example/trivia.jpg"
        assert trivia.website == "https://tockify.com/connectwetaskiwin/detail/1"
        assert trivia.organizer == "Connect Wetaskiwin"

    def test_all_day_event(self, events):
        heritage = events[1]

        assert heritage.time == "All Day"
        assert heritage.location == "Wetaskiwin, AB"
        assert heritage.description == "Heritage Day"


DIRECTORY_HTML = """
<div class="listItemsRow">
    <span>Tim Hortons Coffee Shop</span> Link: <a href="http://www.timhortons.com">www.timhortons.com</a>
    Phone: 780-361-2222 <span>123 Main St, Wetaskiwin, AB T9A1A1</span>
</div>
<div class="alt listItemsRow">Pizza 5010 50 Ave, Wetaskiwin, AB T9A 0S5</div>
<div class="listItemsRow">Short row</div>
<div class="listItemsRow">Camrose Widgets 4910 51 St, Camrose, AB T4V 1K7</div>
"""


class TestBusinessDirectoryScraper:
    """Tests for directory row handling."""

    def test_show_all_url(self):
        assert show_all_url("https://www.wetaskiwin.ca/businessdirectoryii.aspx") == (
            "https://www.wetaskiwin.ca/businessdirectoryii.aspx?ysnShowAll=1"
        )
        assert show_all_url("https://example.com/dir?page=2&ysnShowAll=0") == (
            "https://example.com/dir?page=2&ysnShowAll=1"
        )

    def test_parse_directory(self, heuristics, clock):
        source = SourceConfig.from_dict({
            "source_id": "wetaskiwin_business_directory",
            "source_name": "City of Wetaskiwin Business Directory",
            "kind": "business_directory",
            "category": "businesses",
            "base_url": "https://www.wetaskiwin.ca",
        })
        scraper = BusinessDirectoryScraper(source, http_client=None, heuristics=heuristics, clock=clock)

        businesses = scraper.parse_directory(soup(DIRECTORY_HTML), "https://www.wetaskiwin.ca/businessdirectoryii.aspx")

        assert len(businesses) == 1
        tim = businesses[0]
        assert tim.name == "Tim Hortons Coffee Shop"
        assert tim.website == "https://www.timhortons.com"
        assert tim.phone == "780-361-2222"
        assert tim.category == "restaurant"
        assert scraper.errors == []
