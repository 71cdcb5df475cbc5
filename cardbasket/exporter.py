import datetime
from pathlib import Path

import pandas as pd

from .config import logger
from .utils import generate_unique_filename, truncate_url

EXPORT_COLUMNS = ["Card", "Seller", "Price", "Shipping", "URL"]


def solution_rows(solution):
    return [
        {
            "Card": offer.item_name or offer.item_key[2],
            "Seller": offer.vendor,
            "Price": offer.price,
            "Shipping": offer.shipping,
            "URL": offer.url,
        }
        for offer in solution.chosen_offers
    ]


def solution_to_frame(solution, url_length=70):
    """Console/UI table of the chosen listings, grouped by seller."""
    rows = [
        {
            "Card": f"{offer.item_name or offer.item_key[2]} ({offer.item_key[1]})",
            "Seller": offer.vendor,
            "Price": f"£{offer.price:.2f}",
            "Shipping": f"£{offer.shipping:.2f}",
            "URL": truncate_url(offer.url, url_length),
        }
        for offer in sorted(solution.chosen_offers, key=lambda o: o.vendor)
    ]
    return pd.DataFrame(rows, columns=EXPORT_COLUMNS)


def summary_frame(solution):
    return pd.DataFrame([
        {"Metric": "Total Combined Cost", "Value": round(solution.total_cost, 2)},
        {"Metric": "Listings", "Value": len(solution.chosen_offers)},
        {"Metric": "Chosen Sellers", "Value": ", ".join(solution.activated_vendors)},
        {"Metric": "Unsatisfiable Cards",
         "Value": ", ".join(item.label for item in solution.unsatisfiable_items)},
    ])


def seller_frame(solution):
    """One row per chosen seller: listings bought and their item subtotal."""
    rows = [
        {"Seller": vendor, "Listings": len(offers), "Item Total": round(sum(o.price for o in offers), 2)}
        for vendor, offers in sorted(solution.offers_by_vendor().items())
    ]
    return pd.DataFrame(rows, columns=["Seller", "Listings", "Item Total"])


def timestamped_path(directory, filename, now=None):
    """output/chosen_listings.csv → output/chosen_listings_2024-01-01T10-00-00-000000.csv"""
    now = now or datetime.datetime.now()
    stamp = now.isoformat().replace(":", "-").replace(".", "-")
    path = Path(filename)
    candidate = Path(directory) / f"{path.stem}_{stamp}{path.suffix}"
    if candidate.exists():
        candidate = candidate.with_name(generate_unique_filename(candidate.name))
    return candidate


def export_solution(solution, directory="output", filename="chosen_listings.csv", now=None):
    """
    Write one row per chosen listing to a new timestamped file and return its
    path. ``.xlsx`` filenames get extra Summary and Sellers sheets.
    """
    output_dir = Path(directory)
    output_dir.mkdir(parents=True, exist_ok=True)
    target = timestamped_path(output_dir, filename, now)

    df_results = pd.DataFrame(solution_rows(solution), columns=EXPORT_COLUMNS)
    if target.suffix.lower() == ".xlsx":
        with pd.ExcelWriter(target, engine="openpyxl") as writer:
            df_results.to_excel(writer, sheet_name="Chosen Listings", index=False)
            summary_frame(solution).to_excel(writer, sheet_name="Summary", index=False)
            seller_frame(solution).to_excel(writer, sheet_name="Sellers", index=False)
    elif target.suffix.lower() == ".csv":
        df_results.to_csv(target, index=False, encoding="utf-8")
    else:
        raise ValueError(f"Unsupported export format '{target.suffix}' (use .csv or .xlsx)")

    logger.info(f"Exported {len(df_results)} listing(s) to {target}")
    return target
