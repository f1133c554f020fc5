"""
In-page scripts executed through the browser automation layer.

The element locator is defined exactly once (LOCATOR_FUNCTION_JS) and is
prepended to every script that needs to describe an element, so all call
sites produce identical selectors for the same node.
"""

from a11y_insights.features.heuristics.constants import LOCATOR_MAX_DEPTH

LOCATOR_FUNCTION_JS = """
const buildLocator = (el) => {
  if (!el || !el.tagName) return null;
  if (el.id) return `#${CSS.escape(el.id)}`;
  const parts = [];
  let node = el;
  while (node && node.tagName && parts.length < %(max_depth)d) {
    let part = node.tagName.toLowerCase();
    if (node.classList && node.classList.length > 0) {
      const classes = Array.from(node.classList).slice(0, 2).map((c) => CSS.escape(c));
      if (classes.length) part += `.${classes.join('.')}`;
    }
    const parent = node.parentElement;
    if (parent) {
      const siblings = Array.from(parent.children).filter((s) => s.tagName === node.tagName);
      if (siblings.length > 1) {
        part += `:nth-of-type(${siblings.indexOf(node) + 1})`;
      }
    }
    parts.unshift(part);
    node = node.parentElement;
  }
  return parts.join(' > ');
};
const snippet = (el, limit) => (el && el.outerHTML ? el.outerHTML.slice(0, limit) : null);
""" % {"max_depth": LOCATOR_MAX_DEPTH}


# arguments[0] carries the limits dict built by PageContextExtractor
_SNAPSHOT_BODY_JS = """
const limits = arguments[0];
const clip = (value, limit) => String(value || '').trim().slice(0, limit);

const bodyText = document.body ? (document.body.innerText || '') : '';

const headings = Array.from(document.querySelectorAll('h1,h2,h3,h4,h5,h6'))
  .slice(0, limits.max_headings)
  .map((el) => ({
    level: el.tagName.toLowerCase(),
    text: clip(el.textContent, limits.heading_text),
    selector: buildLocator(el) || el.tagName.toLowerCase(),
    html: snippet(el, limits.html)
  }));

const forms = Array.from(document.querySelectorAll('form'))
  .slice(0, limits.max_forms)
  .map((form) => ({
    inputs: Array.from(form.querySelectorAll('input, select, textarea'))
      .slice(0, limits.max_form_inputs)
      .map((input) => ({
        type: input.tagName.toLowerCase(),
        input_type: input.getAttribute('type') || null,
        label: clip(input.getAttribute('aria-label') || input.getAttribute('placeholder'), limits.label),
        selector: buildLocator(input) || input.tagName.toLowerCase(),
        html: snippet(input, limits.html)
      }))
  }));

const anchors = Array.from(document.querySelectorAll('a'));
const links = anchors.slice(0, limits.max_links).map((a) => ({
  text: clip(a.textContent, limits.link_text),
  href: clip(a.getAttribute('href'), limits.url),
  selector: buildLocator(a) || 'a',
  html: snippet(a, limits.html)
}));

const media = Array.from(document.querySelectorAll('audio, video'))
  .slice(0, limits.max_media)
  .map((el) => ({
    tag: el.tagName.toLowerCase(),
    autoplay: el.hasAttribute('autoplay'),
    controls: el.hasAttribute('controls'),
    src: clip(el.getAttribute('src'), limits.url),
    tracks: Array.from(el.querySelectorAll('track')).map((t) => ({
      kind: t.getAttribute('kind') || '',
      srclang: t.getAttribute('srclang') || ''
    }))
  }));

// arguments[1] carries the check patterns; matching runs on the full text
// of every element, the caps below only bound the candidates returned
const patterns = arguments[1];
const toRegExp = (p) => new RegExp(p.source, p.flags);
const sensoryRes = patterns.sensory.map(toRegExp);
const abbreviationRe = toRegExp(patterns.abbreviation);

const textElements = [];
let sensoryCount = 0;
let abbreviationCount = 0;
for (const el of document.querySelectorAll('p, li, label, span, button, a')) {
  if (sensoryCount >= limits.max_text_elements && abbreviationCount >= limits.max_text_elements) break;
  const text = (el.textContent || '').trim();
  if (!text) continue;
  const tag = el.tagName.toLowerCase();
  const hasTitledAbbr = !!el.querySelector('abbr[title]');

  const sensoryMatch = sensoryCount < limits.max_text_elements
    && patterns.sensory_tags.includes(tag)
    && sensoryRes.some((re) => re.test(text));
  const abbrMatch = abbreviationCount < limits.max_text_elements
    && patterns.abbreviation_tags.includes(tag)
    && !hasTitledAbbr
    ? text.match(abbreviationRe)
    : null;
  if (!sensoryMatch && !abbrMatch) continue;
  if (sensoryMatch) sensoryCount += 1;
  if (abbrMatch) abbreviationCount += 1;

  textElements.push({
    tag,
    text: text.slice(0, limits.element_text),
    selector: buildLocator(el) || tag,
    html: snippet(el, limits.html),
    has_titled_abbr: hasTitledAbbr,
    sensory_match: !!sensoryMatch,
    abbreviation: abbrMatch ? abbrMatch[0] : null
  });
}

const controls = Array.from(document.querySelectorAll('a, button'))
  .map((el) => ({ tag: el.tagName.toLowerCase(), text: (el.textContent || '').toLowerCase() }));
const mentions = (control, terms) => terms.some((term) => control.text.includes(term));

return {
  body_text: bodyText.slice(0, limits.body_text),
  headings,
  forms,
  links,
  media,
  text_elements: textElements,
  has_help_control: controls.some((control) => mentions(control, patterns.help_terms)),
  has_sitemap_link: controls.some((control) => control.tag === 'a' && mentions(control, patterns.sitemap_terms)),
  has_search: !!document.querySelector('input[type="search"], [role="search"], form[role="search"]'),
  has_password_input: !!document.querySelector('input[type="password"]'),
  has_captcha_element: !!document.querySelector('iframe[src*="captcha"], [class*="captcha"], [id*="captcha"]'),
  form_count: document.querySelectorAll('form').length
};
"""

PAGE_SNAPSHOT_SCRIPT = LOCATOR_FUNCTION_JS + _SNAPSHOT_BODY_JS
