from apps.crawler.classifier import (
    CommentSystemType,
    DetectionMethod,
    FieldDescriptor,
    FormCandidate,
    FormDescriptor,
    FormIntent,
    FormPluginType,
    detect_comment_sections,
    detect_forms,
    parse_html,
    prioritize,
    score_form,
)
from apps.crawler.classifier.detect import css_path, find_label, has_captcha


CF7_PAGE = """
<html><body>
  <div class="wpcf7">
    <form class="wpcf7-form" action="/contact/#wpcf7" method="post">
      <label for="your-name">Your name</label>
      <input id="your-name" name="your-name" required>
      <input type="email" name="your-email" required>
      <textarea name="your-message"></textarea>
      <input type="hidden" name="_wpcf7" value="12">
      <input type="submit" value="Send">
    </form>
  </div>
</body></html>
"""

WORDPRESS_POST = """
<html><body>
  <article>Post body</article>
  <div id="respond">
    <form id="commentform" action="/wp-comments-post.php" method="post">
      <textarea name="comment"></textarea>
      <input name="author">
      <input type="email" name="email">
      <input type="submit" id="submit" value="Post Comment">
    </form>
  </div>
</body></html>
"""


class TestDetectForms:
    def test_plugin_form_reported_once(self):
        forms = detect_forms(CF7_PAGE, "https://acme.co/contact")

        assert len(forms) == 1
        form = forms[0]
        assert form.plugin_type == FormPluginType.CONTACT_FORM_7.value
        assert form.detection_method == DetectionMethod.PLUGIN.value
        assert form.action == "https://acme.co/contact/#wpcf7"
        assert form.method == "POST"
        assert [f.key for f in form.fields] == ["your-name", "your-email", "your-message"]
        assert form.fields[0].label == "Your name"
        assert form.fields[0].required is True
        assert form.intent == FormIntent.CONTACT.value

    def test_native_form_with_quote_intent(self):
        html = """
        <body>
          <form id="quote-form" method="post" action="/quote">
            <p>Request a quote</p>
            <input name="name"><input type="email" name="email">
            <textarea name="details"></textarea>
          </form>
        </body>
        """
        forms = detect_forms(html, "https://acme.co/")

        assert len(forms) == 1
        assert forms[0].selector == "#quote-form"
        assert forms[0].plugin_type == FormPluginType.STANDARD.value
        assert forms[0].detection_method == DetectionMethod.NATIVE.value
        assert forms[0].intent == FormIntent.QUOTE.value

    def test_search_login_and_comment_forms_are_ignored(self):
        html = """
        <body>
          <form role="search"><input name="s"><input name="q"></form>
          <form action="/login"><input name="user"><input type="password" name="pw"></form>
        </body>
        """
        assert detect_forms(html) == []
        assert detect_forms(WORDPRESS_POST) == []

    def test_single_field_forms_are_ignored(self):
        assert detect_forms("<body><form><input name='email'></form></body>") == []

    def test_iframe_form_service(self):
        html = '<body><iframe src="https://docs.google.com/forms/d/e/abc/viewform"></iframe></body>'
        forms = detect_forms(html, "https://acme.co/")

        assert len(forms) == 1
        assert forms[0].is_iframe is True
        assert forms[0].plugin_type == FormPluginType.GOOGLE_FORMS.value
        assert forms[0].detection_method == DetectionMethod.IFRAME.value

    def test_formless_container(self):
        html = """
        <body>
          <div data-form="contact">
            <input name="name"><input type="email" name="email">
            <button>Send</button>
          </div>
        </body>
        """
        forms = detect_forms(html)

        assert len(forms) == 1
        assert forms[0].detection_method == DetectionMethod.CONTAINER.value
        assert forms[0].plugin_type == FormPluginType.GENERIC.value
        assert len(forms[0].fields) == 2

    def test_captcha_flag(self):
        html = """
        <body><form id="c"><input name="name"><input name="email">
        <div class="g-recaptcha" data-sitekey="x"></div></form></body>
        """
        assert detect_forms(html)[0].has_captcha is True


class TestDetectCommentSections:
    def test_wordpress_comment_form(self):
        sections = detect_comment_sections(WORDPRESS_POST, "https://acme.co/post")

        assert len(sections) == 1
        section = sections[0]
        assert section.type == CommentSystemType.WORDPRESS.value
        assert section.detection_method == DetectionMethod.CMS.value
        assert section.selector == "#commentform"
        assert {f.key for f in section.fields} == {"comment", "author", "email"}
        assert section.is_embed is False

    def test_disqus_widget_is_an_embed(self):
        sections = detect_comment_sections('<body><div id="disqus_thread"></div></body>')

        assert len(sections) == 1
        assert sections[0].type == CommentSystemType.DISQUS.value
        assert sections[0].is_embed is True
        assert sections[0].fields == []

    def test_generic_reply_form_needs_textarea(self):
        with_textarea = "<body><form><h3>Leave a reply</h3><textarea name='body'></textarea></form></body>"
        without_textarea = "<body><form><h3>Leave a reply</h3><input name='body'></form></body>"

        assert detect_comment_sections(with_textarea)[0].type == CommentSystemType.GENERIC.value
        assert detect_comment_sections(without_textarea) == []


class TestHelpers:
    def test_css_path_uses_nth_of_type(self):
        soup = parse_html("<body><div><form></form><form></form></div></body>")
        second = soup.find_all("form")[1]
        assert css_path(soup, second) == "body > div:nth-of-type(1) > form:nth-of-type(2)"

    def test_css_path_stops_at_unique_id(self):
        soup = parse_html("<body><section id='main'><form></form></section></body>")
        assert css_path(soup, soup.form) == "#main > form:nth-of-type(1)"

    def test_find_label_fallbacks(self):
        soup = parse_html("""
            <div><label>Email <input name="email"></label></div>
            <div><input name="phone" aria-label="Phone number"></div>
        """)
        assert find_label(soup, soup.find("input", attrs={"name": "email"})) == "Email"
        assert find_label(soup, soup.find("input", attrs={"name": "phone"})) == "Phone number"

    def test_has_captcha(self):
        soup = parse_html('<div class="h-captcha"></div>')
        assert has_captcha(soup.div)


class TestPrioritize:
    def _form(self, **kwargs):
        defaults = dict(selector="form", plugin_type="standard", detection_method="native")
        defaults.update(kwargs)
        return FormDescriptor(**defaults)

    def test_contact_form_outranks_captcha_newsletter(self):
        contact = self._form(
            intent="contact",
            plugin_type="contact-form-7",
            fields=[
                FieldDescriptor(type="text", name="name"),
                FieldDescriptor(type="email", name="email"),
                FieldDescriptor(type="textarea", name="message", tag_name="textarea"),
            ],
        )
        newsletter = self._form(
            intent="newsletter",
            has_captcha=True,
            fields=[FieldDescriptor(type="email", name="email")],
        )

        ranked = prioritize([
            FormCandidate("https://acme.co/blog", newsletter),
            FormCandidate("https://acme.co/contact", contact),
        ])

        assert ranked[0].form is contact
        assert ranked[0].score > ranked[1].score

    def test_score_is_clamped(self):
        cluttered = self._form(
            has_captcha=True,
            is_iframe=True,
            fields=[FieldDescriptor(type="text", name=f"f{i}", required=True) for i in range(12)],
        )
        assert score_form(cluttered) == 0

    def test_ties_keep_discovery_order(self):
        a = FormCandidate("https://acme.co/a", self._form(selector="#a"))
        b = FormCandidate("https://acme.co/b", self._form(selector="#b"))
        assert [c.form.selector for c in prioritize([a, b])] == ["#a", "#b"]
