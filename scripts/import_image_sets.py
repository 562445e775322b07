import argparse
import json
import sys
import time
import requests

# --- Configuration ---
DEFAULT_API_BASE_URL = "http://localhost:8000" # Assuming default uvicorn port
IMAGE_SETS_PATH = "/api/v1/image-sets/"
MAX_RETRIES = 3
RETRY_DELAY_SECONDS = 5

# --- API Interaction ---
def add_image_set_api(endpoint, image_set):
    """Posts one image set. Returns the created record, or None if it was skipped or failed."""
    response = None
    for attempt in range(MAX_RETRIES):
        try:
            response = requests.post(endpoint, json=image_set, timeout=10)
            response.raise_for_status() # Raises HTTPError for bad responses (4XX or 5XX)
            print(f"Added: {image_set.get('correct_answer')}")
            return response.json()
        except requests.exceptions.HTTPError as e:
            if response is not None and response.status_code == 409:
                print(f"Skipped duplicate: {image_set.get('correct_answer')}")
                return None
            if response is not None and response.status_code in (400, 422):
                print(f"Validation error for '{image_set.get('correct_answer')}': {response.text}")
                return None
            print(f"HTTP error adding image set (attempt {attempt + 1}/{MAX_RETRIES}): {e}")
        except requests.exceptions.RequestException as e:
            print(f"Request error adding image set (attempt {attempt + 1}/{MAX_RETRIES}): {e}")

        if attempt < MAX_RETRIES - 1:
            time.sleep(RETRY_DELAY_SECONDS)
    print("Max retries reached. Failed to add image set.")
    return None

def load_image_sets(path):
    with open(path, encoding="utf-8") as f_in:
        data = json.load(f_in)
    # Accept either a bare list or {"imageSets": [...]}
    if isinstance(data, dict):
        data = data.get("imageSets", data.get("image_sets", []))
    if not isinstance(data, list):
        raise ValueError("Expected a list of image sets")
    return data

def main():
    parser = argparse.ArgumentParser(description="Import image sets from a JSON file into a running Guess the Link server.")
    parser.add_argument("file", help="JSON file containing a list of image sets.")
    parser.add_argument("--api-url", default=DEFAULT_API_BASE_URL, help=f"Base URL of the server (default: {DEFAULT_API_BASE_URL}).")
    parser.add_argument("--category", default=None, help="Category to apply to sets that have none.")
    args = parser.parse_args()

    try:
        image_sets = load_image_sets(args.file)
    except (OSError, ValueError) as e:
        print(f"Error reading {args.file}: {e}")
        sys.exit(1)

    endpoint = args.api_url.rstrip("/") + IMAGE_SETS_PATH
    added = 0
    for image_set in image_sets:
        payload = {
            "images": image_set.get("images", []),
            "correct_answer": image_set.get("correct_answer", image_set.get("correctAnswer", "")),
            "hint": image_set.get("hint"),
            "category": image_set.get("category") or args.category,
        }
        if add_image_set_api(endpoint, payload):
            added += 1

    print(f"Done. {added}/{len(image_sets)} image sets added.")

if __name__ == "__main__":
    main()
