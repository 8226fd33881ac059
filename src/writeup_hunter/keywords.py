"""
Built-in keyword taxonomy.

Maps a vulnerability class keyword to the Telegram forum topic (message
thread id) its notifications are posted to. Several keywords may share one
topic.
"""

GENERAL_TOPIC = "general"
GENERAL_ROUTING_KEY = "0"

DEFAULT_KEYWORDS: dict[str, str] = {
    GENERAL_TOPIC: GENERAL_ROUTING_KEY,
    "xss": "5",
    "open redirect": "12",
    "business logic": "11",
    "authentication": "10",
    "privilege escalation": "9",
    "misconfiguration": "8",
    "idor": "7",
    "access control": "6",
    "recon": "52",
    "osint": "51",
    "enumeration": "52",
    "fuzzing": "52",
    "bypass": "52",
    "cache poisoning": "53",
    "Cache Deception": "54",
    "HTTP Request Smuggling": "55",
    "H2C Smuggling": "56",
    "Client Side Template Injection": "57",
    "Command Injection": "58",
    "CRLF": "59",
    "Dangling Markup": "60",
    "File Inclusion": "61",
    "Path Traversal": "61",
    "Prototype Pollution": "62",
    "Server Side Inclusion": "63",
    "Edge Side Inclusion": "63",
    "Server Side Request Forgery": "64",
    "Server Side Template Injection": "65",
    "Reverse Tab Nabbing": "66",
    "XSLT Injection": "67",
    "XSSI": "68",
    "NoSQL": "69",
    "LDAP": "70",
    "ReDoS": "71",
    "SQL Injection": "2",
    "XPATH Injection": "72",
    "Cross Site Request Forgery": "74",
    "CSRF": "74",
    "Cross-site WebSocket hijacking": "75",
    "PostMessage Vulnerabilities": "76",
    "Clickjacking": "77",
    "CSP bypass": "78",
    "2FA Bypass": "79",
    "Payment Bypass": "80",
    "Captcha Bypass": "81",
    "Login Bypass": "82",
    "Race Condition": "83",
    "Rate Limit": "84",
    "Reset Password": "85",
    "Mail Header Injection": "86",
    "JWT": "87",
    "XXE": "88",
    "File Upload": "89",
    "OAUTH": "90",
    "SAML": "91",
    "Subdomain Takeover": "92",
    "Parameter Pollution": "93",
}
