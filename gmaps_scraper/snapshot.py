"""
A single captured render frame of a browser page.

Field and listing extraction run against a snapshot instead of the live
driver, so every field of one business is read from the same frame and the
extraction rules can be exercised against plain HTML.
"""

from bs4 import BeautifulSoup, Comment

HIDDEN_TAGS = ("script", "style", "noscript", "template")

# Runs in the page; one round trip so HTML and visible text come from the same frame
CAPTURE_JS = """
    return [
        document.documentElement ? document.documentElement.outerHTML : '',
        document.body ? document.body.innerText : '',
        window.location.href
    ];
"""


def element_text(element):
    """Whitespace-normalised text content of an element ('' for None)"""
    if element is None:
        return ""
    return " ".join(element.get_text(" ", strip=True).split())


def element_lines(element):
    """Non-empty text lines of an element, each whitespace-normalised"""
    if element is None:
        return []
    lines = []
    for line in element.get_text("\n", strip=True).splitlines():
        line = " ".join(line.split())
        if line:
            lines.append(line)
    return lines


def element_attr(element, name):
    """Trimmed attribute value, '' when missing"""
    if element is None:
        return ""
    value = element.get(name)
    if isinstance(value, list): # BeautifulSoup returns class-like attributes as lists
        value = " ".join(value)
    return (value or "").strip()


class PageSnapshot:
    """Parsed HTML, visible text and URL of one page at one moment"""

    def __init__(self, html, text=None, url=""):
        self.html = html or ""
        self.url = url or ""
        self.soup = BeautifulSoup(self.html, "html.parser")
        self._text = text

    @classmethod
    def capture(cls, driver):
        """Capture the current frame of a Selenium driver"""
        html, text, url = driver.execute_script(CAPTURE_JS)
        return cls(html, text=text, url=url)

    @property
    def text(self):
        """Visible body text; derived from the HTML when the browser did not supply it"""
        if self._text is None:
            body = self.soup.body or self.soup
            lines = []
            for string in body.find_all(string=True):
                if isinstance(string, Comment) or string.parent.name in HIDDEN_TAGS:
                    continue
                line = " ".join(string.split())
                if line:
                    lines.append(line)
            self._text = "\n".join(lines)
        return self._text

    def select(self, selector):
        return self.soup.select(selector)

    def select_one(self, selector):
        return self.soup.select_one(selector)

    def __repr__(self):
        return f"<PageSnapshot url={self.url!r} html={len(self.html)} chars>"
