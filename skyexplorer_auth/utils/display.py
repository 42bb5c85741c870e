"""
Display Utilities - Terminal output for the management CLI
"""

SENSITIVE_MARKERS = ("PASSWORD", "SECRET", "KEY", "TOKEN")


def print_banner():
    banner = r"""
    ╔═══════════════════════════════════════════════════════════╗
    ║                                                           ║
    ║        ✈️   SKYEXPLORER AUTH  ✈️                            ║
    ║                                                           ║
    ║        Identity management for SkyExplorer                ║
    ║                                                           ║
    ╚═══════════════════════════════════════════════════════════╝
    """
    print(banner)


def print_config_summary(config_dict):
    """
    Prints the current configuration with secrets masked.
    """
    print("\n🔧 Current Configuration Summary:")
    print("─────────────────────────────────────────────")
    for key, value in config_dict.items():
        if any(marker in key.upper() for marker in SENSITIVE_MARKERS):
            display_value = "********" if value else "(not set)"
        else:
            display_value = value
        print(f"• {key}: {display_value}")
    print("─────────────────────────────────────────────\n")


def print_users_table(users):
    print(f"\n{'ID':<6} {'Username':<20} {'Email':<30} {'Roles':<20}")
    print("-" * 78)
    for u in users:
        print(f"{u.id:<6} {u.username:<20} {u.email:<30} {','.join(sorted(u.roles)):<20}")
    print(f"\nTotal: {len(users)} users.")


def show_security_banner(username: str, admin_pw: str):
    """
    Displays generated admin credentials with a high-visibility border.
    """
    width = 60
    header = "🚀 ADMIN ACCOUNT CREATED"

    print("\n" + "╔" + "═" * (width - 2) + "╗")
    print(f"║ {header:^{width - 4}} ║")
    print("╠" + "═" * (width - 2) + "╣")
    print(f"║  Username: {username:<{width - 14}}║")
    print(f"║  Password: {admin_pw:<{width - 14}}║")
    print("╠" + "═" * (width - 2) + "╣")
    print(f"║ {'⚠️  SAVE THIS PASSWORD! It will not be shown again.':^{width - 4}} ║")
    print("╚" + "═" * (width - 2) + "╝\n")
