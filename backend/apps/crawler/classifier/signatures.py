# apps/crawler/classifier/signatures.py

"""
Static markup fingerprints for form plugins, embedded form services and
comment systems. Each table is evaluated in order; earlier entries win.
"""

from enum import Enum


class FormPluginType(str, Enum):
    # WordPress form plugins
    CONTACT_FORM_7 = "contact-form-7"
    GRAVITY_FORMS = "gravity-forms"
    WPFORMS = "wpforms"
    NINJA_FORMS = "ninja-forms"
    FORMIDABLE = "formidable-forms"
    FLUENT_FORMS = "fluent-forms"
    CALDERA = "caldera-forms"
    FORMINATOR = "forminator"
    EVEREST_FORMS = "everest-forms"
    HAPPYFORMS = "happyforms"
    KALI_FORMS = "kali-forms"
    JETPACK = "jetpack"
    QUFORM = "quform"
    WS_FORM = "ws-form"

    # Page builders
    ELEMENTOR = "elementor"
    DIVI = "divi"
    BEAVER_BUILDER = "beaver-builder"
    AVADA = "avada"

    # Email marketing / CRM
    MAILCHIMP = "mailchimp"
    MAILCHIMP_WP = "mailchimp-wp"
    HUBSPOT = "hubspot"
    CONVERTKIT = "convertkit"
    ACTIVECAMPAIGN = "activecampaign"
    MARKETO = "marketo"
    PARDOT = "pardot"
    ZOHO = "zoho"

    # Hosted site builders and other CMSes
    WIX = "wix"
    SQUARESPACE = "squarespace"
    WEBFLOW = "webflow"
    SHOPIFY = "shopify"
    DRUPAL_WEBFORM = "drupal-webform"
    JOOMLA_RSFORM = "joomla-rsform"
    JOOMLA_CHRONOFORMS = "joomla-chronoforms"

    # Embedded form services (iframes)
    GOOGLE_FORMS = "google-forms"
    TYPEFORM = "typeform"
    JOTFORM = "jotform"
    WUFOO = "wufoo"
    COGNITO_FORMS = "cognito-forms"
    FORMSTACK = "formstack"
    MICROSOFT_FORMS = "microsoft-forms"
    ZOHO_FORMS = "zoho-forms"
    PAPERFORM = "paperform"
    TALLY = "tally"
    AIRTABLE = "airtable"
    FORMBUILDER_123 = "123formbuilder"
    FORMSITE = "formsite"

    # Heuristic matches
    STANDARD = "standard"
    GENERIC = "generic"
    UNKNOWN = "unknown"


class DetectionMethod(str, Enum):
    PLUGIN = "plugin"
    IFRAME = "iframe"
    NATIVE = "native"
    CONTAINER = "container"
    CMS = "cms"
    WIDGET = "widget"
    GENERIC = "generic"


class FormIntent(str, Enum):
    CONTACT = "contact"
    QUOTE = "quote"
    FEEDBACK = "feedback"
    NEWSLETTER = "newsletter"
    UNKNOWN = "unknown"


class CommentSystemType(str, Enum):
    WORDPRESS = "wordpress"
    DRUPAL = "drupal"
    JOOMLA = "joomla"
    DISQUS = "disqus"
    FACEBOOK = "facebook"
    COMMENTO = "commento"
    HYVOR = "hyvor"
    GENERIC = "generic"


# (css selector, plugin)
PLUGIN_SIGNATURES: list[tuple[str, FormPluginType]] = [
    ("form.wpcf7-form", FormPluginType.CONTACT_FORM_7),
    ("div.wpcf7", FormPluginType.CONTACT_FORM_7),
    ("form[id^='gform_']", FormPluginType.GRAVITY_FORMS),
    (".gform_wrapper", FormPluginType.GRAVITY_FORMS),
    ("form.wpforms-form", FormPluginType.WPFORMS),
    (".wpforms-container", FormPluginType.WPFORMS),
    (".nf-form-cont", FormPluginType.NINJA_FORMS),
    (".ninja-forms-form-wrap", FormPluginType.NINJA_FORMS),
    ("form.frm-show-form", FormPluginType.FORMIDABLE),
    (".frm_forms", FormPluginType.FORMIDABLE),
    ("form.frm-fluent-form", FormPluginType.FLUENT_FORMS),
    (".fluentform", FormPluginType.FLUENT_FORMS),
    ("form.caldera_forms_form", FormPluginType.CALDERA),
    ("form.forminator-custom-form", FormPluginType.FORMINATOR),
    (".evf-container", FormPluginType.EVEREST_FORMS),
    ("form.happyforms-form", FormPluginType.HAPPYFORMS),
    (".kaliforms-form-container", FormPluginType.KALI_FORMS),
    (".wp-block-jetpack-contact-form", FormPluginType.JETPACK),
    (".quform", FormPluginType.QUFORM),
    (".wsf-form", FormPluginType.WS_FORM),
    ("form.elementor-form", FormPluginType.ELEMENTOR),
    (".et_pb_contact_form_container", FormPluginType.DIVI),
    (".et_pb_contact_form", FormPluginType.DIVI),
    (".fl-contact-form", FormPluginType.BEAVER_BUILDER),
    ("form.fusion-form", FormPluginType.AVADA),
    ("form.mc4wp-form", FormPluginType.MAILCHIMP_WP),
    ("form#mc-embedded-subscribe-form", FormPluginType.MAILCHIMP),
    ("#mc_embed_signup", FormPluginType.MAILCHIMP),
    ("form.hs-form", FormPluginType.HUBSPOT),
    (".hbspt-form", FormPluginType.HUBSPOT),
    ("form.formkit-form", FormPluginType.CONVERTKIT),
    ("form.seva-form", FormPluginType.CONVERTKIT),
    ("form._form[id^='_form_']", FormPluginType.ACTIVECAMPAIGN),
    ("form.mktoForm", FormPluginType.MARKETO),
    ("form.pardot-form", FormPluginType.PARDOT),
    ("form[name^='WebToLeads']", FormPluginType.ZOHO),
    ("#crmWebToEntityForm", FormPluginType.ZOHO),
    ("form[class*='wixui-form']", FormPluginType.WIX),
    (".sqs-block-form", FormPluginType.SQUARESPACE),
    (".w-form", FormPluginType.WEBFLOW),
    ("form[action*='/contact#']", FormPluginType.SHOPIFY),
    ("form.webform-submission-form", FormPluginType.DRUPAL_WEBFORM),
    ("form.webform-client-form", FormPluginType.DRUPAL_WEBFORM),
    (".rsform", FormPluginType.JOOMLA_RSFORM),
    ("form.chronoform", FormPluginType.JOOMLA_CHRONOFORMS),
]

# (substring of iframe src, plugin)
IFRAME_SIGNATURES: list[tuple[str, FormPluginType]] = [
    ("docs.google.com/forms", FormPluginType.GOOGLE_FORMS),
    ("forms.gle/", FormPluginType.GOOGLE_FORMS),
    ("typeform.com", FormPluginType.TYPEFORM),
    ("jotform.com", FormPluginType.JOTFORM),
    ("jotform.us", FormPluginType.JOTFORM),
    ("jotformeu.com", FormPluginType.JOTFORM),
    ("hsforms.net", FormPluginType.HUBSPOT),
    ("hsforms.com", FormPluginType.HUBSPOT),
    ("wufoo.com", FormPluginType.WUFOO),
    ("cognitoforms.com", FormPluginType.COGNITO_FORMS),
    ("formstack.com", FormPluginType.FORMSTACK),
    ("forms.office.com", FormPluginType.MICROSOFT_FORMS),
    ("forms.microsoft.com", FormPluginType.MICROSOFT_FORMS),
    ("forms.zohopublic.com", FormPluginType.ZOHO_FORMS),
    ("zoho.com/forms", FormPluginType.ZOHO_FORMS),
    ("paperform.co", FormPluginType.PAPERFORM),
    ("tally.so", FormPluginType.TALLY),
    ("airtable.com/embed", FormPluginType.AIRTABLE),
    ("123formbuilder.com", FormPluginType.FORMBUILDER_123),
    ("formsite.com", FormPluginType.FORMSITE),
]

# Form-less field groups built by JS frameworks
CONTAINER_SELECTORS = [
    "[data-form]",
    "[data-form-type]",
    "[data-form-id]",
    "[role='form']",
]

CONTAINER_NAME_PATTERNS = [
    "contact",
    "newsletter",
    "subscribe",
    "enquiry",
    "inquiry",
    "quote",
    "lead",
    "signup",
    "feedback",
]

# (css selector, comment system), most specific first
COMMENT_FORM_SELECTORS: list[tuple[str, CommentSystemType]] = [
    ("form#commentform", CommentSystemType.WORDPRESS),
    ("#respond form", CommentSystemType.WORDPRESS),
    ("form.comment-form:not(.comment-comment-form)", CommentSystemType.WORDPRESS),
    ("form.comment-comment-form", CommentSystemType.DRUPAL),
    ("form#comment-form", CommentSystemType.DRUPAL),
    ("form#comments-form", CommentSystemType.JOOMLA),
    ("#jc form", CommentSystemType.JOOMLA),
    ("#comments form", CommentSystemType.GENERIC),
]

COMMENT_WIDGET_SELECTORS: list[tuple[str, CommentSystemType]] = [
    ("#disqus_thread", CommentSystemType.DISQUS),
    ("[data-disqus-identifier]", CommentSystemType.DISQUS),
    (".fb-comments", CommentSystemType.FACEBOOK),
    ("#commento", CommentSystemType.COMMENTO),
    ("#hyvor-talk-view", CommentSystemType.HYVOR),
    ("hyvor-talk-comments", CommentSystemType.HYVOR),
]

CAPTCHA_MARKERS = [
    "captcha",
    "recaptcha",
    "hcaptcha",
    "g-recaptcha",
    "cf-turnstile",
    "arkose",
    "funcaptcha",
]

SKIPPED_INPUT_TYPES = {"submit", "button", "hidden", "reset", "image"}

INTENT_KEYWORDS: list[tuple[FormIntent, tuple[str, ...]]] = [
    (FormIntent.QUOTE, ("quote", "estimate", "pricing request")),
    (FormIntent.FEEDBACK, ("feedback", "review", "suggestion")),
    (FormIntent.CONTACT, ("contact", "message", "enquiry", "inquiry", "get in touch", "email us")),
    (FormIntent.NEWSLETTER, ("newsletter", "subscribe", "sign up", "signup", "opt-in", "mailing list")),
]
