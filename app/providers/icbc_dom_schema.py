"""
Centralized DOM schema for the ICBC road test booking portal.

The portal is an Angular Material single-page application. Every element the
discovery pipeline touches is addressed here as an ordered fallback chain of
`Locator` strategies, grouped by functional area. The first strategy in a chain
is the most specific; later ones are progressively looser.

This module is the single source of truth for DOM element identification.
When the portal changes its markup, update locators ONLY in this file.
"""

from dataclasses import dataclass

from app.providers.locators import Locator

DATE_TEXT_PATTERN = r"\d{1,2}/\d{1,2}|\w+ \d{1,2}"
TIME_TEXT_PATTERN = r"\d{1,2}:\d{2}|\d{1,2} ?[ap]m"


@dataclass(frozen=True)
class LoginSelectors:
    """Selectors for the driver login form."""

    last_name_input: tuple[Locator, ...] = (
        Locator.xpath("//input[@id=//label[contains(., \"Driver's last name\")]/@for]"),
        Locator.css("input[formcontrolname='drvrLastName']"),
    )
    licence_number_input: tuple[Locator, ...] = (
        Locator.xpath(
            "//input[@id=//label[contains(., \"B.C. driver's or learner's licence number\")]/@for]"
        ),
        Locator.css("input[formcontrolname='licenceNumber']"),
    )
    keyword_input: tuple[Locator, ...] = (
        Locator.xpath("//input[@id=//label[contains(., 'ICBC keyword')]/@for]"),
        Locator.css("input[formcontrolname='keyword']"),
    )
    # Some deployments pre-accept the terms, so absence is fine
    terms_checkbox: tuple[Locator, ...] = (
        Locator.css("mat-checkbox[formcontrolname='cb']"),
        Locator.css("label[for='mat-checkbox-1-input']"),
        Locator.role("checkbox", "I have read and agree to the"),
    )
    sign_in_button: tuple[Locator, ...] = (
        Locator.role("button", "Sign in"),
        Locator.xpath("//button[@type='submit'][contains(normalize-space(.), 'Sign in')]"),
        Locator.css("button[type='submit']"),
    )
    error_messages: tuple[Locator, ...] = (
        Locator.css(".error-message"),
        Locator.css(".alert-danger"),
        Locator.css("[data-test='login-error']"),
        Locator.css("mat-error"),
    )


@dataclass(frozen=True)
class NavigationSelectors:
    """Selectors for moving from the booking overview into the scheduling workflow."""

    reschedule_button: tuple[Locator, ...] = (
        Locator.xpath(
            "//button[contains(concat(' ', normalize-space(@class), ' '), ' raised-button ')"
            " and contains(concat(' ', normalize-space(@class), ' '), ' primary ')]"
            "[contains(normalize-space(.), 'Reschedule appointment')]"
        ),
        Locator.xpath(
            "//button[contains(@class, 'raised-button')]"
            "[contains(normalize-space(.), 'Reschedule appointment')]"
        ),
        Locator.text("Reschedule appointment", tag="button"),
        Locator.role("button", "Reschedule appointment"),
    )
    confirm_yes_button: tuple[Locator, ...] = (
        Locator.role("button", "Yes"),
        Locator.text("Yes", tag="button"),
    )


@dataclass(frozen=True)
class LocationSelectors:
    """Selectors for the location autocomplete and the post-search location list."""

    location_input: tuple[Locator, ...] = (
        Locator.css("input[formcontrolname='finishedAutocomplete']"),
        Locator.css("input[placeholder='Start typing...']"),
        Locator.css("input.mat-autocomplete-trigger"),
    )
    autocomplete_panel: tuple[Locator, ...] = (
        Locator.css(".mat-autocomplete-panel"),
        Locator.css("div[role='listbox']"),
    )
    # Options may exist in the markup while their panel is style-hidden
    autocomplete_options: tuple[Locator, ...] = (
        Locator.css("mat-option.mat-option"),
        Locator.css(".mat-autocomplete-panel mat-option"),
        Locator.css("[role='option']"),
        Locator.css(".cdk-overlay-pane mat-option"),
    )
    option_text: tuple[Locator, ...] = (Locator.css(".mat-option-text"),)
    force_show_panel_script: str = (
        "document.querySelectorAll('.mat-autocomplete-panel').forEach(el => {"
        "el.style.display = 'block';"
        "el.style.visibility = 'visible';"
        "el.style.opacity = '1';"
        "el.classList.remove('mat-autocomplete-hidden');"
        "})"
    )
    # Result-page location list, distinct from the autocomplete input
    disambiguation_list: tuple[Locator, ...] = (
        Locator.css(".department-container"),
        Locator.css(".first-office-container"),
        Locator.css(".other-locations-container"),
    )
    nearest_location: tuple[Locator, ...] = (
        Locator.css(".first-office-container .background-highlight"),
    )
    other_locations: tuple[Locator, ...] = (
        Locator.css(".other-locations-container .background-highlight.other-locations"),
    )
    location_title: tuple[Locator, ...] = (Locator.css(".department-title"),)
    selected_class: str = "clicked"


@dataclass(frozen=True)
class DaySelectors:
    """Selectors for the day-of-week checkboxes."""

    checkbox_by_name_template: str = "mat-checkbox[name='{day}']"
    checkbox_by_label_template: str = (
        "//mat-checkbox[contains(normalize-space(.), '{label}')]"
    )
    all_checkboxes: tuple[Locator, ...] = (Locator.css("mat-checkbox"),)
    checked_class: str = "mat-checkbox-checked"
    inner_input: tuple[Locator, ...] = (Locator.css("input.mat-checkbox-input"),)

    def checkbox(self, day_name: str) -> tuple[Locator, ...]:
        lower = day_name.lower()
        return (
            Locator.css(self.checkbox_by_name_template.format(day=lower)),
            Locator.xpath(self.checkbox_by_label_template.format(label=day_name)),
            Locator.xpath(self.checkbox_by_label_template.format(label=lower)),
        )


@dataclass(frozen=True)
class SearchSelectors:
    """Selectors for the search action."""

    search_button: tuple[Locator, ...] = (
        Locator.role("button", "Search"),
        Locator.text("Search", tag="button"),
        Locator.xpath("//button[@type='submit'][contains(normalize-space(.), 'Search')]"),
    )
    disabled_classes: tuple[str, ...] = ("mat-button-disabled", "disabled")


@dataclass(frozen=True)
class ResultSelectors:
    """Selectors for the appointment results listing."""

    view_more_button: tuple[Locator, ...] = (
        Locator.css(".view-more-btn"),
        Locator.text("View more", tag="button"),
    )
    # Containers that group one date label with its own slots
    date_groups: tuple[Locator, ...] = (
        Locator.css(".appointment-listings .date-container"),
        Locator.css(".appointment-listings > div"),
        Locator.css("[class*='date-group']"),
    )
    date_labels: tuple[Locator, ...] = (
        Locator.css(".date-title"),
        Locator.css(".appointment-date"),
        Locator.css("[class*='date']"),
        Locator.css("h3, h4, h5", text_pattern=DATE_TEXT_PATTERN),
    )
    time_slots: tuple[Locator, ...] = (
        Locator.css(".mat-button-toggle-button .mat-button-toggle-label-content"),
        Locator.css(".time-slot"),
        Locator.css(".appointment-time"),
        Locator.css("button", text_pattern=TIME_TEXT_PATTERN),
        Locator.css("[class*='time']", text_pattern=TIME_TEXT_PATTERN),
    )
    no_results_markers: tuple[Locator, ...] = (
        Locator.text("No appointments"),
        Locator.text("not available"),
        Locator.text("No results"),
        Locator.css(".no-results"),
        Locator.css(".empty-results"),
        Locator.css("[class*='no-appointment']"),
    )


@dataclass(frozen=True)
class ICBCDOMSchema:
    """Top-level container grouping all selector categories."""

    LOGIN: LoginSelectors = LoginSelectors()
    NAVIGATION: NavigationSelectors = NavigationSelectors()
    LOCATION: LocationSelectors = LocationSelectors()
    DAYS: DaySelectors = DaySelectors()
    SEARCH: SearchSelectors = SearchSelectors()
    RESULTS: ResultSelectors = ResultSelectors()


# Single import point: `from app.providers.icbc_dom_schema import DOM`
DOM = ICBCDOMSchema()
