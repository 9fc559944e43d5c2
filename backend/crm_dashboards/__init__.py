"""CRM dashboards service: configurable dashboards, widget layout and widget data."""
