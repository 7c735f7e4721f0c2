"""Main execution script for the Autograder client."""

import sys

from dotenv import load_dotenv

# Load variables from .env into the environment before config reads them
load_dotenv()

import config
from utils.logger import setup_logger
from utils.error_handler import (AuthenticationError, APIError, ConfigError,
                                 ContractError, ProfileNotFoundError, UserCancelledError)
from core.autograder import AutograderClient
import ui.cli as cli

logger = setup_logger()

def main() -> int:
    """Runs the interactive workflow. Returns the process exit code."""
    logger.info("Starting Autograder client workflow.")
    cli.display_welcome()

    try:
        if not config.SUPABASE_URL or not config.SUPABASE_ANON_KEY:
            raise ConfigError("SUPABASE_URL and SUPABASE_ANON_KEY must be set (environment or .env file).")

        client = AutograderClient(config.SUPABASE_URL, config.SUPABASE_ANON_KEY)

        # --- Step 1: Authentication ---
        cli.display_step(1, "Signing in...")
        email = cli.prompt_text("Email")
        password = cli.prompt_text("Password", password=True)
        response = client.authenticate_user(email, password)
        cli.display_success(f"Signed in as {response.user.email}.")

        # --- Step 2: Profile ---
        cli.display_step(2, "Loading your profile...")
        own = client.get_profile_by_auth_id(response.user.id)
        if own is None:
            raise ProfileNotFoundError(f"No profile is linked to account '{response.user.email or response.user.id}'.")
        profile = client.get_user_profile(own.id)
        if profile is None:
            raise ProfileNotFoundError(f"Profile '{own.id}' could not be loaded.")
        if not profile.classes:
            cli.display_warning("You are not enrolled in any classes.")
            return 0

        # --- Step 3: Select Class and Assignment ---
        cli.display_step(3, "Choose a class and assignment...")
        selected_class = cli.prompt_for_selection(profile.classes, cli.format_class_for_display, "class")
        selected_assignment = cli.prompt_for_selection(
            selected_class.assignments, cli.format_assignment_for_display, "assignment"
        )
        if selected_assignment is None:
            cli.display_warning(f"Class '{selected_class.name}' has no assignments.")
            return 0
        logger.info(f"User selected assignment {selected_assignment.id} in class {selected_class.id}.")

        # --- Step 4: Submitted Students ---
        cli.display_step(4, f"Checking submissions for '{selected_assignment.name}'...")
        submitted = client.get_submitted_students(selected_class.id, selected_assignment.id)
        cli.display_profiles(submitted, "Students with complete submissions")
        student = cli.prompt_for_selection(submitted, cli.format_profile_for_display, "student")
        if student is None:
            return 0

        # --- Step 5: Download a File ---
        cli.display_step(5, f"Submissions from {student.email}...")
        versions = client.get_submitted_versions_for_assignment(student.id, selected_assignment.id)
        cli.display_submissions(versions, "Submitted files")
        latest = client.get_latest_submitted_version(student.id, selected_assignment.id)
        cli.display_success(f"Latest version: {latest}")

        chosen = cli.prompt_for_selection(versions, cli.format_submission_for_display, "file")
        if chosen is not None and cli.confirm_action(f"Download {chosen.file_name} v{chosen.version}?", default=True):
            content = client.download_file(student.id, selected_assignment.id, chosen.version, chosen.file_name)
            if content is None:
                cli.display_warning("The storage server did not return the file.")
            else:
                cli.display_file(chosen.file_name, content)
        return 0

    except (AuthenticationError, ConfigError) as e:
        logger.critical(f"Setup or Authentication Error: {e}", exc_info=config.DEBUG)
        cli.display_error(e)
    except ContractError as e:
        logger.error(f"Request Error: {e}", exc_info=config.DEBUG)
        cli.display_error(e)
    except APIError as e:
        logger.error(f"Backend Error: {e}", exc_info=config.DEBUG)
        cli.display_error(e)
    except UserCancelledError as e:
        logger.info(f"Operation cancelled by user: {e}")
        cli.display_warning(f"Operation cancelled: {e}")
        return 0
    except KeyboardInterrupt:
        logger.info("Operation interrupted by user (Ctrl+C).")
        cli.display_warning("Operation interrupted.")
    finally:
        cli.display_farewell()
    return 1

if __name__ == "__main__":
    sys.exit(main())
