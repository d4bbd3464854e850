# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================
"""Static UI copy for the four supported languages."""

from typing import Dict

from shared.locale_path import DEFAULT_LOCALE

Dictionary = Dict[str, str]

DICTS: Dict[str, Dictionary] = {
    "en": {
        "site_name": "Guide Me ABC",
        "for_business": "For Business",
        "businesses": "Businesses",
        "islands": "Islands",
        "search": "Search",
        "pricing": "Pricing",
        "contact": "Contact",
        "hero_title": "Discover the ABC Islands",
        "hero_subtitle": "Your guide to Aruba, Bonaire & Curaçao: beaches, restaurants, tours and trusted local businesses.",
        "explore_islands": "Explore Islands",
        "businesses_heading": "Discover Businesses",
        "businesses_sub": "Browse local businesses across the ABC Islands",
        "all_islands": "All islands",
        "no_businesses": "No active businesses published yet for this selection.",
        "view_details": "View details",
        "no_mini_site": "No mini-site",
        "verified": "Verified",
        "opening_hours": "Opening hours",
        "closed": "Closed",
        "call": "Call",
        "whatsapp": "WhatsApp",
        "route": "Route",
        "website": "Website",
        "search_placeholder": "Search businesses…",
        "search_too_short": "Type at least two characters.",
        "no_results": "No results.",
        "pricing_title": "Simple, Transparent Pricing",
        "per_month": "per month",
        "choose_plan": "Choose plan",
        "business_auth_title": "Business Account",
        "business_auth_subtitle": "Sign in or sign up to manage your business",
        "email": "Email",
        "send_magic_link": "Email me a sign-in link",
        "magic_link_sent": "Check your inbox for the sign-in link.",
        "continue_with": "Continue with",
        "mfa_title": "Two-step verification",
        "mfa_prompt": "Enter the 6-digit code from your authenticator app.",
        "verify": "Verify",
        "logout": "Log out",
        "dashboard_title": "Dashboard",
        "dashboard_subtitle": "Manage your business listings",
        "no_listings": "You have no businesses yet",
        "plan": "Plan",
        "status": "Status",
        "clicks_last_30_days": "Clicks in the last 30 days",
        "security_title": "Account security",
        "enable_mfa": "Enable two-step verification",
        "mfa_enabled": "Two-step verification is on.",
        "admin_businesses_title": "Businesses",
        "godmode_title": "God Mode",
        "users": "Users",
        "settings": "Settings",
        "maintenance_title": "We'll be right back",
        "maintenance_body": "Guide Me ABC is down for maintenance. Please try again shortly.",
        "contact_title": "Contact us",
        "not_found": "Page not found",
        "name": "Name",
        "subject": "Subject",
        "message": "Message",
        "send": "Send",
        "message_sent": "Thanks, we received your message.",
        "auth_error": "Sign-in failed. Please try again.",
        "categories": "Categories",
        "mini_site": "Mini-site",
        "access_denied": "You do not have access to that page.",
        "create_business": "Add your business",
        "business_name": "Business name",
        "island": "Island",
        "category": "Category",
        "create": "Create",
    },
    "nl": {
        "site_name": "Guide Me ABC",
        "for_business": "Voor Ondernemers",
        "businesses": "Bedrijven",
        "islands": "Eilanden",
        "search": "Zoeken",
        "pricing": "Prijzen",
        "contact": "Contact",
        "hero_title": "Ontdek de ABC-eilanden",
        "hero_subtitle": "Jouw gids voor Aruba, Bonaire & Curaçao: stranden, restaurants, tours en betrouwbare lokale bedrijven.",
        "explore_islands": "Ontdek de eilanden",
        "businesses_heading": "Ontdek Bedrijven",
        "businesses_sub": "Browse lokale bedrijven op de ABC-eilanden",
        "all_islands": "Alle eilanden",
        "no_businesses": "Nog geen actieve bedrijven in deze selectie.",
        "view_details": "Bekijk details",
        "no_mini_site": "Geen mini-site",
        "verified": "Geverifieerd",
        "opening_hours": "Openingstijden",
        "closed": "Gesloten",
        "call": "Bellen",
        "whatsapp": "WhatsApp",
        "route": "Route",
        "website": "Website",
        "search_placeholder": "Zoek bedrijven…",
        "search_too_short": "Typ minstens twee tekens.",
        "no_results": "Geen resultaten.",
        "pricing_title": "Eenvoudige, transparante prijzen",
        "per_month": "per maand",
        "choose_plan": "Kies pakket",
        "business_auth_title": "Bedrijfsaccount",
        "business_auth_subtitle": "Log in of registreer om je bedrijf te beheren",
        "email": "E-mail",
        "send_magic_link": "Stuur mij een inloglink",
        "magic_link_sent": "Check je inbox voor de inloglink.",
        "continue_with": "Doorgaan met",
        "mfa_title": "Verificatie in twee stappen",
        "mfa_prompt": "Voer de 6-cijferige code uit je authenticator-app in.",
        "verify": "Verifiëren",
        "logout": "Uitloggen",
        "dashboard_title": "Dashboard",
        "dashboard_subtitle": "Beheer je bedrijfsvermeldingen",
        "no_listings": "Je hebt nog geen bedrijven",
        "plan": "Pakket",
        "status": "Status",
        "clicks_last_30_days": "Kliks in de laatste 30 dagen",
        "security_title": "Accountbeveiliging",
        "enable_mfa": "Verificatie in twee stappen inschakelen",
        "mfa_enabled": "Verificatie in twee stappen staat aan.",
        "admin_businesses_title": "Bedrijven",
        "godmode_title": "God Mode",
        "users": "Gebruikers",
        "settings": "Instellingen",
        "maintenance_title": "We zijn zo terug",
        "maintenance_body": "Guide Me ABC is in onderhoud. Probeer het straks opnieuw.",
        "contact_title": "Neem contact op",
        "not_found": "Pagina niet gevonden",
        "create_business": "Voeg je bedrijf toe",
        "business_name": "Bedrijfsnaam",
        "island": "Eiland",
        "category": "Categorie",
        "create": "Aanmaken",
    },
    "pap": {
        "site_name": "Guide Me ABC",
        "for_business": "Pa Negoshi",
        "businesses": "Negoshinan",
        "islands": "Islanan",
        "search": "Buska",
        "pricing": "Preisnan",
        "contact": "Kontakto",
        "hero_title": "Deskubri e Islanan ABC",
        "hero_subtitle": "Bo guia pa Aruba, Bonaire & Kòrsou: playanan, restorant, tour i negoshinan lokal konfiabel.",
        "explore_islands": "Eksplora e islanan",
        "businesses_heading": "Deskubri Negoshinan",
        "businesses_sub": "Eksplora negoshinan lokal riba e Islanan ABC",
        "all_islands": "Tur isla",
        "no_businesses": "Ainda no tin negoshi aktivo den e seleccion aki.",
        "view_details": "Mira detaye",
        "search_placeholder": "Buska negoshinan…",
        "closed": "Será",
        "opening_hours": "Oranan di habri",
        "logout": "Sali",
    },
    "es": {
        "site_name": "Guide Me ABC",
        "for_business": "Para Empresas",
        "businesses": "Negocios",
        "islands": "Islas",
        "search": "Buscar",
        "pricing": "Precios",
        "contact": "Contacto",
        "hero_title": "Descubre las Islas ABC",
        "hero_subtitle": "Tu guía de Aruba, Bonaire y Curazao: playas, restaurantes, tours y negocios locales de confianza.",
        "explore_islands": "Explorar islas",
        "businesses_heading": "Descubre Negocios",
        "businesses_sub": "Explora negocios locales en las Islas ABC",
        "all_islands": "Todas las islas",
        "no_businesses": "Aún no hay negocios activos en esta selección.",
        "view_details": "Ver detalles",
        "search_placeholder": "Buscar negocios…",
        "closed": "Cerrado",
        "opening_hours": "Horario",
        "call": "Llamar",
        "logout": "Cerrar sesión",
    },
}


def t(lang: str) -> Dictionary:
    """Dictionary for a language, filled up with English for missing keys."""
    base = DICTS[DEFAULT_LOCALE]
    if lang == DEFAULT_LOCALE or lang not in DICTS:
        return dict(base)
    merged = dict(base)
    merged.update(DICTS[lang])
    return merged
