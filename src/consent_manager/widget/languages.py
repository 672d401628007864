"""Languages offered by the widget's language picker."""

SUPPORTED_LANGUAGES: tuple[dict[str, str], ...] = (
    {"code": "en", "name": "English"},
    {"code": "mr", "name": "Marathi - मराठी"},
    {"code": "ta", "name": "Tamil - தமிழ்"},
    {"code": "gu", "name": "Gujarati - ગુજરાતી"},
    {"code": "kn", "name": "Kannada - ಕನ್ನಡ"},
    {"code": "ml", "name": "Malayalam - മലയാളം"},
    {"code": "or", "name": "Odia - ଓଡ଼ିଆ"},
    {"code": "pa", "name": "Punjabi - ਪੰਜਾਬੀ"},
    {"code": "as", "name": "Assamese - অসমীয়া"},
    {"code": "mai", "name": "Maithili - मैथिली"},
    {"code": "bh", "name": "Bhojpuri - भोजपुरी"},
    {"code": "ks", "name": "Kashmiri - कश्मीरी"},
    {"code": "ne", "name": "Nepali - नेपाली"},
    {"code": "sd", "name": "Sindhi - سنڌي"},
    {"code": "ur", "name": "Urdu - اردو"},
    {"code": "kok", "name": "Konkani - कोंकणी"},
    {"code": "mni", "name": "Manipuri - মৈতৈলোন্"},
    {"code": "sat", "name": "Santali - ᱥᱟᱱᱛᱟᱲᱤ"},
    {"code": "doi", "name": "Dogri - डोगरी"},
)
